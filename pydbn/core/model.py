"""Model scheleton."""

import json

from .config import Config


class Model(object):
    """Class representing an abstract Model.

    Subclasses describe themselves with `get_configuration()` (a JSON
    serializable dict) and restore from it with `set_configuration()`.
    """

    def __init__(self, name):
        """Constructor.

        :param name: name of the model, used as filename.
        """
        self.name = name

    @property
    def model_path(self):
        """Default JSON file of the model."""
        return Config().model_path(self.name)

    def get_configuration(self):
        raise NotImplementedError

    def set_configuration(self, data):
        raise NotImplementedError

    def save_configuration(self, outfile=None):
        """Save a json representation of the model.

        :param outfile: path of the output file, default model_path
        :return: path of the written file
        """
        outfile = outfile or self.model_path
        with open(outfile, 'w') as f:
            json.dump(self.get_configuration(), f)
        return outfile

    def load_configuration(self, infile=None):
        """Load a json representation of the model previously saved.

        :param infile: path of the input file, default model_path
        :return: self
        """
        infile = infile or self.model_path
        with open(infile, 'r') as f:
            self.set_configuration(json.load(f))
        return self
