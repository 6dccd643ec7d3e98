"""IndexSync - keeps a semantic code index in step with the working tree."""

__version__ = "0.1.0"
