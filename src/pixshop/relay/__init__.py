"""
HTTP relay for pixshop.

Forwards edit requests from clients to the image model, keeping the Gemini
credential on the server.
"""

from pixshop.relay.app import create_app
from pixshop.relay.server import run_server

__all__ = ["create_app", "run_server"]
