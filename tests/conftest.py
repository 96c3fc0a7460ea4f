"""Global test fixtures."""

import logfire

# Keep logfire local and silent for the whole test session
logfire.configure(send_to_logfire=False, console=False)
