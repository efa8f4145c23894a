"""Library-wise configurations."""

import os


class Config(object):
    """Shared configuration. Every `Config()` returns the same settings."""

    class _Settings(object):

        def __init__(self, models_dir='models'):
            """Trained models go to ~/.pydbn/<models_dir>."""
            self.home_dir = os.path.join(os.path.expanduser("~"), '.pydbn')
            self.models_dir = os.path.join(self.home_dir, models_dir)

        def model_path(self, name):
            """Return the default JSON file of the model called `name`."""
            os.makedirs(self.models_dir, exist_ok=True)
            return os.path.join(self.models_dir, name + '.json')

    instance = None

    def __new__(cls):
        if Config.instance is None:
            Config.instance = Config._Settings()
        return Config.instance
