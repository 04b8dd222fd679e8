"""Allow ``python -m vault_sync`` to start the server."""

from vault_sync import run_server

run_server()
