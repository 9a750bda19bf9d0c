"""
dapp - helpers for considerate applications

A small library for applications that read their configuration from
several places and need to decide where they may read and write files.

dapp provides:
  - Layered configuration with "first writer wins" precedence per field
  - Config sources: other config values, environment variables, strings
    and files
  - Pluggable document formats (YAML, JSON and TOML built in)
  - Path checks: existence, permissions, and whether a path can be created

Quick Start
-----------
Check that a config file decodes:

    $ dapp validate ~/.config/myapp/config.yaml

See which candidate directory could be created:

    $ dapp paths --first creatable /var/log/myapp ~/.local/state/myapp

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
config : package
    Configuration merge contract, dataclass settings and formats.
path : module
    Path existence and permission predicates.
exceptions : module
    Exception hierarchy.
logging : module
    Pluggable output for library code.

Public API
----------
    from dapp.config import Configuration, Settings, setting
    from dapp.path import is_creatable, first_readable_path

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"
__description__ = "Layered configuration loading and path checks"

from dapp.config import Configuration, Settings, setting

__all__ = [
    "__version__",
    "__license__",
    "__description__",
    "Configuration",
    "Settings",
    "setting",
]
