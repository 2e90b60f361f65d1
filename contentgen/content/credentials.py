"""Provider credential lookup."""

from contentgen.content.errors import ContentValidationError
from contentgen.core.config import Settings, settings
from contentgen.llm.providers import ProviderName, parse_provider

SETTINGS_KEYS: dict[ProviderName, str] = {
    ProviderName.OPENAI: "OPENAI_API_KEY",
    ProviderName.ANTHROPIC: "ANTHROPIC_API_KEY",
    ProviderName.GEMINI: "GEMINI_API_KEY",
}


class CredentialResolver:
    """Resolves the credential a batch is generated with.

    An explicit key supplied by the caller wins; otherwise the key configured
    for the provider in settings is used.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    def resolve(self, provider: str | ProviderName, api_key: str | None = None) -> str:
        """Return the credential for ``provider``.

        Raises:
            ContentValidationError: If the provider is unknown or has no key
        """
        name = parse_provider(provider)
        if api_key and api_key.strip():
            return api_key.strip()

        configured = getattr(self.config, SETTINGS_KEYS[name], None)
        if not configured:
            raise ContentValidationError(f"No {name.value} API key configured")
        return str(configured)
