"""Implements a class that can touch a file, creating it if does not exist.
This is used by a health check script while the harness runs."""
from pathlib import Path

from waterlevel.logger import logger
from waterlevel.settings import ApplicationSettings, app_settings
from waterlevel.utils import get_time


class FileToucher:
    """Touches the health check file given by the settings."""

    def __init__(self, settings: ApplicationSettings = app_settings):
        self.settings = settings
        self.last_timestamp_file_was_touched = 0

    def update(self):
        """Touches the file if needed. This function must be called regularly in order to touch the file."""
        if self.settings.health_check_period <= 0:
            return
        current_timestamp = get_time()
        if current_timestamp >= self.last_timestamp_file_was_touched + self.settings.health_check_period:
            self.touch_file()
            self.last_timestamp_file_was_touched = current_timestamp

    def touch_file(self):
        logger.debug(f"Touching file {self.settings.health_check_file_name}.")
        Path(self.settings.health_check_file_name).touch(exist_ok=True)
