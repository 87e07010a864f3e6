# sensitivity.py
import numpy as np
import copy
import logging
from typing import Dict

import engine
from parameters import ConfigurationError, SimulationParameters
from utils import get_nested_value, set_nested_value

def run_sensitivity_suite(
    base_params_obj: SimulationParameters,
    sensitivity_suite_config: Dict,
    sims_per_run: int,
    seed: int = 42
) -> Dict:
    """
    Reads a configuration dictionary and runs a full sensitivity analysis suite.

    Each entry names a parameter path (e.g. ['portfolio', 'portfolio_size']),
    a list of variation values and whether they are 'absolute' replacements or
    'multiplicative' factors. Returns {test_name: (variations, mean IRRs)}.
    Variations that make the configuration invalid record NaN.
    """
    all_sensitivity_results = {}

    for test_name, config in sensitivity_suite_config.items():
        logging.info(f"--- Running Sensitivity Test: {test_name} ---")

        test_results_for_this_param = []
        variation_values = config['variation']
        path_list = config['path']
        param_type = config.get('type', 'absolute')

        for test_value in variation_values:
            logging.info(f"  Testing value/factor: {test_value}")
            params_copy = copy.deepcopy(base_params_obj)

            original_param_value = get_nested_value(vars(params_copy), path_list)
            if original_param_value is None:
                raise ConfigurationError(f"Sensitivity path {path_list} does not exist.")

            if param_type == 'multiplicative':
                new_value = original_param_value * test_value
                # Integer parameters (trial counts, portfolio sizes) stay integers
                if isinstance(original_param_value, int):
                    new_value = int(round(new_value))
            else: # 'absolute'
                new_value = test_value

            set_nested_value(vars(params_copy), path_list, new_value)

            try:
                params_copy.portfolio.validate()
                summary = engine.run_monte_carlo(
                    params=params_copy,
                    num_simulations=sims_per_run,
                    seed=seed
                )
            except ConfigurationError as e:
                logging.warning(f"  Skipping {test_name}={test_value}: {e}")
                test_results_for_this_param.append(np.nan)
                continue

            test_results_for_this_param.append(summary.mean)

        all_sensitivity_results[test_name] = (variation_values, test_results_for_this_param)

    return all_sensitivity_results
