"""hopsconsole: event and task normalization for the automation console."""

__version__ = "0.1.0"
