"""A small multi-threaded async runtime with an I/O reactor, an HTTP GET client and a delay server."""

__version__ = "0.1.0"