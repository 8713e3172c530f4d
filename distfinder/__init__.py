"""distfinder - Trace shipped distribution files back to the builds that produced them.

This package walks distribution artifacts (archives, installers, RPMs),
checksums every contained file and resolves those checksums against
build-tracking systems.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
