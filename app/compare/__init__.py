"""Expose the compare blueprint serving freight quote comparisons.

The blueprint bundles the calculation endpoint, cached result lookups and the
form snapshot store so they can be registered with the main Flask
application under a single prefix.
"""

from flask import Blueprint

compare_bp = Blueprint("compare", __name__)

from . import routes  # noqa: F401,E402
