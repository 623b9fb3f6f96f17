"""whosfree - who in a group is free, busy or unknown right now.

Calendar feeds are normalized into weekly busy blocks; group queries merge
those blocks per member and classify everyone against a reference time.
"""

__version__ = "0.1.0"

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


def run_server(args: Optional[Any] = None) -> None:
    """Load configuration, apply CLI overrides and start the HTTP server.

    Args:
        args: Optional argparse namespace with config, host, port and debug
    """
    from whosfree.api.server import start_server
    from whosfree.core.config import Config, ConfigManager
    from whosfree.logging_config import configure_logging, get_logging_status

    config_path = getattr(args, "config", None)
    config = ConfigManager().load_full_config(config_path)

    overrides = config.to_dict()
    if getattr(args, "host", None):
        overrides["server_bind"] = args.host
    if getattr(args, "port", None):
        overrides["server_port"] = args.port
    config = Config.from_dict(overrides)

    debug = bool(getattr(args, "debug", False)) or config.log_level == "DEBUG"
    configure_logging(debug_mode=debug)
    logger.debug("Logger levels: %s", get_logging_status())

    start_server(config)
