"""Server commands."""

import cyclopts
import uvicorn

app = cyclopts.App(name="server", help="Server commands")


@app.command
def start(
    host: str = "0.0.0.0",
    port: int = 8000,
    reload: bool = False,
) -> None:
    """Run the chartscan server in the foreground.

    Args:
        host: Host to bind to.
        port: Port to listen on.
        reload: Restart on code changes (development only).
    """
    uvicorn.run(
        "chartscan.application.api.rest.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,  # configure_logging owns the root logger
    )
