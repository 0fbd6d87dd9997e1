"""Development server entry point.

The configuration class can be chosen with ``--config`` (an import path such as
``spahub.config.TestingConfig``) or ``SPAHUB_CONFIG``; otherwise ``create_app``
falls back to ``Config`` overlaid with the file named by ``APP_SETTINGS``.
"""
from __future__ import annotations

import argparse
import os

from spahub import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the SpaHub development server.")
    parser.add_argument("--config", default=os.environ.get("SPAHUB_CONFIG"), help="Import path of a config class")
    parser.add_argument("--host", default=os.environ.get("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 5000)))
    parser.add_argument("--show-routes", action="store_true", help="Log the mounted URL map before starting")
    args = parser.parse_args()

    flask_app = create_app(args.config)

    if args.show_routes:
        for rule in sorted(flask_app.url_map.iter_rules(), key=lambda r: r.rule):
            flask_app.logger.info("%s %s", ",".join(sorted(rule.methods - {"HEAD", "OPTIONS"})), rule.rule)

    debug_enabled = os.environ.get("FLASK_DEBUG", "0") in {"1", "true", "True"}
    flask_app.run(host=args.host, port=args.port, debug=debug_enabled)


if __name__ == "__main__":
    main()
