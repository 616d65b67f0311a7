"""pairline - pairing codes and QR linking for messaging-client devices."""

__version__ = "0.3.0"
