# NOTE: bump this number when we make new updates
__version__ = "1.0.0"
