# ABOUTME: Verbose debug output toggled by the DEBUG environment variable
# ABOUTME: Prints component-tagged lines to stdout

from surfwatch.config import Config


def debug_log(message: str, component: str = "DEBUG") -> None:
    """Print a tagged debug line when DEBUG=true, otherwise do nothing."""
    if Config.DEBUG:
        print(f"[{component}] {message}")
