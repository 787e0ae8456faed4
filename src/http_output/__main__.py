"""
Ship newline-delimited JSON events from stdin to the configured HTTP hosts.

    python -m http_output [config.ini] < events.ndjson

The INI path may also come from HTTP_OUTPUT_CONFIG_PATH. Any option can be
overridden with its HTTP_OUTPUT_* variable (listed in config.py).
"""
import os
import sys

from .shipper import main


def _config_path_from(argv, environ):
    # An explicit argument wins over the environment
    if len(argv) > 1:
        return argv[1]
    return environ.get("HTTP_OUTPUT_CONFIG_PATH") or None


if __name__ == "__main__":
    main(_config_path_from(sys.argv, os.environ))
