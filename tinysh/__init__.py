"""tinysh - an interactive command shell with line editing, pipelines and history."""

__version__ = "0.1.0"
