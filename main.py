import argparse
import sys

from pydantic import ValidationError

from phaserec.pipeline import run_pipeline, setup_logging
from phaserec.schema import load_run_config


def main():
    parser = argparse.ArgumentParser(
        description="Reconstruct two-phase microstructures from S2 correlation functions"
    )
    parser.add_argument(
        "config", nargs="?", default="config.yaml", help="Path to run config YAML"
    )
    args = parser.parse_args()

    logger = setup_logging()

    try:
        config = load_run_config(args.config)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    except ValidationError as e:
        logger.error(f"Invalid configuration '{args.config}':\n{e}")
        sys.exit(1)

    run_pipeline(config)


if __name__ == "__main__":
    main()
