from utils.output_utils import OutputHandler
from utils.logging_utils import LoggingHandler


class UtilsHandler:
    """
    Container for utility services, created lazily from the session config.
    """

    def __init__(self, config):
        """
        :param config: SessionConfig instance
        """
        self.config = config
        self._output = None
        self._logger = None

    @property
    def output(self):
        if self._output is None:
            self._output = OutputHandler(self.config)
        return self._output

    @property
    def logger(self):
        if self._logger is None:
            self._logger = LoggingHandler(self.config, self.output)
        return self._logger
