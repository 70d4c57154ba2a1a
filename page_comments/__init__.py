"""Page comments API for SharePoint sites."""

__version__ = "0.1.0"
