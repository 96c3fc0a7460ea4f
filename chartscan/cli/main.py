"""Main CLI application using Cyclopts.

`scan` is a thin HTTP client - it talks to the server via the REST API.
"""

import cyclopts

from chartscan.cli.commands import scan, server

app = cyclopts.App(
    name="chartscan",
    help="chartscan - container images referenced by a chart, and their sizes",
)

app.command(server.app, name="server")
app.command(scan.app, name="scan")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
