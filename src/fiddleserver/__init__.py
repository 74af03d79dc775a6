"""fiddleserver - HTTP host for a versioned coding playground."""

__version__ = "0.1.0"
