# run_simulation.py

import logging
import sys

from parameters_loader import load_parameters
from engine import run_monte_carlo


def main(config_path='config.yaml'):
    """Runs the configured simulation and logs the summary statistics."""
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')

    params = load_parameters(config_path)
    summary = run_monte_carlo(params)

    logging.info(summary.stats_text)
    if summary.convergence_failures:
        logging.info(f"{summary.convergence_failures} trials recorded the non-convergence sentinel")
    return summary


if __name__ == "__main__":
    main(*sys.argv[1:2])
