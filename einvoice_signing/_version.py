"""Version information for the e-invoice signing library."""

__version__ = "1.0.0"
__version_info__ = tuple(int(i) for i in __version__.split('.'))

# UBL-JSON signature profile this release produces
SIGNATURE_PROFILE_VERSION = "1.1"
