#!/usr/bin/env python3
"""
Run the regional air quality collection service.
"""

import argparse
import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from colorado_air_quality.runner import main as run_main


def main():
    parser = argparse.ArgumentParser(description="Colorado Air Quality Collector")
    parser.add_argument("--log-level", type=str, help="Log level")
    parser.add_argument("--store-path", type=str, help="JSON history file")
    parser.add_argument("--metrics-port", type=int, help="Prometheus metrics port")
    parser.add_argument("--no-metrics", action="store_true", help="Disable the metrics server")
    args = parser.parse_args()

    # CLI flags override environment for this session
    if args.log_level:
        os.environ["CAQ_LOG_LEVEL"] = args.log_level
    if args.store_path:
        os.environ["CAQ_STORE_BACKEND"] = "file"
        os.environ["CAQ_STORE_PATH"] = args.store_path
    if args.metrics_port:
        os.environ["CAQ_METRICS_PORT"] = str(args.metrics_port)
    if args.no_metrics:
        os.environ["CAQ_METRICS_ENABLED"] = "false"

    run_main()


if __name__ == "__main__":
    main()
