from __future__ import annotations

from typing import Any, Dict, Optional

from config_manager import ConfigManager, SessionConfig
from core.fields import Field, FieldError, fields_from_config
from session import PromptSession
from utils_handler import UtilsHandler


class SessionBuilder:
    """
    Builds fully configured prompt sessions: session config with overrides,
    utility services and the known-fields registry from [FIELD.<name>].
    """

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        self.config_manager = config_manager or ConfigManager()

    def build(self, fields: Optional[Dict[str, Field]] = None, **options: Any) -> PromptSession:
        session_config: SessionConfig = self.config_manager.create_session_config(options)
        utils = UtilsHandler(session_config)

        try:
            registry = fields_from_config(session_config.list_fields())
        except FieldError as e:
            raise FieldError(f"Invalid field in configuration: {e}") from e
        if fields:
            registry.update({name.lower(): field for name, field in fields.items()})

        session = PromptSession(session_config, utils=utils, fields=registry)

        # Initialize logging early and warn if enabled but not writable
        if bool(session.get_option('LOG', 'active', fallback=False)) and not utils.logger.active():
            utils.output.warning("Logging is enabled but the log file could not be opened; check [LOG].dir or permissions.")

        return session
