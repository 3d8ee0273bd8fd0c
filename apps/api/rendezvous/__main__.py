"""Allow ``python -m rendezvous`` to start the signaling server."""
from __future__ import annotations

from .main import serve

if __name__ == "__main__":
    serve()
