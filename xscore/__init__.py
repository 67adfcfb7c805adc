"""Building blocks of a higher-order shell: lexer, syntax trees, splitting, variables, signals, statuses and system primitives."""

__version__ = "0.1.0"