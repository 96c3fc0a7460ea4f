"""Scan command - asks a running server to scan a chart."""

import os
import sys

import cyclopts
import httpx

from chartscan.cli.console import get_console

app = cyclopts.App(name="scan", help="Scan a chart for container images")

# Scans inspect every image against its registry; allow for slow registries
SCAN_TIMEOUT = httpx.Timeout(600.0, connect=5.0)


def get_server_url() -> str:
    """Get server URL from environment."""
    return os.environ.get("CHARTSCAN_URL", "http://localhost:8000")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text


@app.default
def scan(
    chart_url: str,
    /,
    *,
    json: bool = False,
) -> None:
    """Scan a packaged chart and list the images it references.

    Args:
        chart_url: URL of the chart archive (.tgz).
        json: Print the raw JSON response instead of a table.
    """
    console = get_console()
    server_url = get_server_url()

    try:
        with console.status(f"Scanning {chart_url}..."):
            response = httpx.post(
                f"{server_url}/api/v1/scan",
                json={"chart_url": chart_url},
                timeout=SCAN_TIMEOUT,
            )
    except httpx.ConnectError:
        console.error(
            f"Could not connect to server at {server_url}",
            hint="Is the server running? Start it with: chartscan server start",
        )
        sys.exit(1)
    except httpx.TimeoutException:
        console.error("Timed out waiting for the scan to finish")
        sys.exit(1)

    if response.status_code != httpx.codes.OK:
        console.error(f"{response.status_code} - {_error_message(response)}")
        sys.exit(1)

    images = response.json()
    if json:
        console.print_json(images)
    else:
        console.images(images, title=chart_url)
