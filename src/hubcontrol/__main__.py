"""
CLI entry point for hubcontrol.

Allows running with: python -m hubcontrol
"""

import os


def main():
    """Main entry point for the hubcontrol CLI."""
    from .config_manager import get_config_manager
    from .main import run_server

    # Environment overrides the config file
    config = get_config_manager().config
    port = int(os.environ.get("HUBCONTROL_PORT", config.port))
    host = os.environ.get("HUBCONTROL_HOST", config.host)
    open_browser = os.environ.get(
        "HUBCONTROL_OPEN_BROWSER", "1" if config.auto_open_browser else "0"
    ).lower() not in ("0", "false", "no")

    run_server(host=host, port=port, open_browser=open_browser)


if __name__ == "__main__":
    main()
