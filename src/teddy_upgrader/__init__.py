"""Self-upgrader for locally installed instances of Teddy.

Checks GitHub for a newer release, downloads and verifies it, backs up
the current instance and replaces its managed resources in place.
"""

__version__ = "0.1.0"
