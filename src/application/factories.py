"""Factory for creating provider clients."""

from domain.exceptions import ProviderNotConfiguredError
from domain.protocols import IBatchClient
from infrastructure.config import BatchConfig
from infrastructure.gemini import GeminiBatchClient
from shared.logging import get_logger


class BatchClientFactory:
    """
    Builds one provider client per orchestration run.

    The client is handed explicitly to the orchestrator instead of being
    read from process-wide state, so each run owns its own API key, model
    and HTTP session.
    """

    def __init__(self, config: BatchConfig):
        self._config = config
        self._logger = get_logger(__name__)

    def create_client(self) -> IBatchClient:
        """
        Create a Gemini batch client.

        Raises:
            ProviderNotConfiguredError: If no API key is configured
        """
        if not self._config.api_key:
            raise ProviderNotConfiguredError(
                "Gemini API key not found. Set it with 'gemini-batch config set-key YOUR_API_KEY' "
                "or the GEMINI_API_KEY environment variable."
            )

        self._logger.debug(f"Creating Gemini client for model {self._config.model}")
        return GeminiBatchClient(
            api_key=self._config.api_key,
            model=self._config.model,
            api_base=self._config.api_base,
            logger=get_logger('gemini'),
        )
