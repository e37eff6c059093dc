"""Default configuration values for microdeck."""

# Agent liveness polling. The agent gets this long to answer a ping before
# it is declared unreachable.
DEFAULT_PING_TIMEOUT = 10.0  # seconds
DEFAULT_PING_DELAY = 0.5  # seconds

# Per-request HTTP timeout for agent calls
DEFAULT_AGENT_TIMEOUT = 1.0  # seconds

# Poll interval and ceiling for long-running agent tasks (stop, mount, unmount)
DEFAULT_AGENT_TASK_POLL_INTERVAL = 0.5  # seconds
DEFAULT_AGENT_TASK_TIMEOUT = 300.0  # seconds

# Upper bound for a single CPI method invocation
DEFAULT_CPI_TIMEOUT = 600.0  # seconds

# Grace period for CPI support processes to exit after SIGTERM
DEFAULT_PROCESS_STOP_TIMEOUT = 10.0  # seconds

DEFAULT_HOME_DIR = "~/.microdeck"
USER_CONFIG_FILE = "config.json"
DEPLOYMENT_STATE_FILE = "deployment.json"
