"""
aip-reviewer — package root.

Reviews OpenAPI documents against a curated catalog of rules derived from
Google's API Improvement Proposals, and applies the structured fixes that
findings carry. Importing the package configures nothing and starts no
worker processes; the ``aip_reviewer`` logger only gets a ``NullHandler``
until ``configure_logging`` installs a real one.
"""

import logging

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["__version__"]
