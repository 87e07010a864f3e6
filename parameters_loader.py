# ==============================================================================
# --- Angel Portfolio Model: Parameter Loader & Validator (v1.0) ---
# ==============================================================================

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
import yaml

from distributions import validate_dist
from parameters import (
    ConfigurationError, DistSpec, LinearDist, PortfolioConfig, ReturnBin,
    Scenario, SimulationParameters, TriangularDist, UniformDist
)
from return_model import (
    DEFAULT_TOP_EXIT_MAX, DEFAULT_TOP_EXIT_MIN, DEFAULT_TOP_EXIT_PEAK, validate_bins, wiltbank_bins
)

DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / 'config.schema.json'


def parse_dist(dist_data: Dict) -> DistSpec:
    """Builds a distribution spec from its YAML mapping."""
    dist_type = dist_data.get('type')

    if dist_type == 'uniform':
        dist = UniformDist(low=dist_data['low'], high=dist_data['high'])
    elif dist_type == 'triangular':
        dist = TriangularDist(min=dist_data['min'], max=dist_data['max'], peak=dist_data['peak'])
    elif dist_type == 'linear':
        dist = LinearDist(x0=dist_data['x0'], x1=dist_data['x1'], y0=dist_data['y0'], y1=dist_data['y1'])
    else:
        raise ConfigurationError(f"Unsupported distribution type: {dist_type}")

    return validate_dist(dist)


def parse_return_bins(model_config: Dict):
    """Explicit bin table if one is given, otherwise the Wiltbank table."""
    if 'bins' not in model_config:
        top_exit_year = model_config.get('top_exit_year', {})
        return wiltbank_bins(
            top_exit_peak=top_exit_year.get('peak', model_config.get('top_exit_peak', DEFAULT_TOP_EXIT_PEAK)),
            top_exit_min=top_exit_year.get('min', DEFAULT_TOP_EXIT_MIN),
            top_exit_max=top_exit_year.get('max', DEFAULT_TOP_EXIT_MAX)
        )

    bins = []
    for entry in model_config['bins']:
        lower, upper = entry['range']
        y0, y1 = entry['multiplier']
        bins.append(ReturnBin(
            lower=lower,
            upper=upper,
            multiplier=LinearDist(lower, upper, y0, y1),
            exit_year=parse_dist(entry['exit_year'])
        ))
    return validate_bins(bins)


def validate_schema(config: Dict[str, Any], schema_path: Optional[Path] = None):
    schema_path = Path(schema_path) if schema_path is not None else DEFAULT_SCHEMA_PATH
    try:
        with open(schema_path, 'r', encoding='utf-8') as f:
            schema = json.load(f)
    except FileNotFoundError:
        logging.warning(f"Schema file not found at {schema_path}. Skipping validation.")
        return

    try:
        jsonschema.validate(instance=config, schema=schema)
    except jsonschema.ValidationError as e:
        logging.error(f"Configuration failed validation against {schema_path}: {e.message}")
        raise ConfigurationError(f"Invalid configuration: {e.message}") from e
    logging.info("Configuration successfully validated against schema.")


def parameters_from_dict(config: Dict[str, Any], schema_path: Optional[Path] = None) -> SimulationParameters:
    """Validates (schema and logic) a configuration mapping and parses it into SimulationParameters."""
    # --- 1. Schema Validation ---
    validate_schema(config, schema_path)

    # --- 2. Logical Validation & Parsing ---
    # PortfolioConfig and the bin table validate themselves and raise ConfigurationError
    portfolio = PortfolioConfig(
        num_trials=config['num_trials'],
        portfolio_size=config['portfolio_size'],
        investment_period_years=config['investment_period_years']
    )
    return_bins = parse_return_bins(config.get('return_model', {}))

    scenario = Scenario(**config['scenario']) if 'scenario' in config else None

    params = SimulationParameters(
        scenario=scenario,
        schema_version=config.get('schema_version', 1.0),
        portfolio=portfolio,
        return_bins=return_bins,
        base_year=config.get('base_year', 2016),
        irr_guess=config.get('irr_guess', -0.1),
        histogram_bin_width=config.get('histogram_bin_width', 1.0)
    )
    if not params.irr_guess > -1:
        raise ConfigurationError(f"irr_guess must be greater than -1. Got: {params.irr_guess}")
    if not params.histogram_bin_width > 0:
        raise ConfigurationError(f"histogram_bin_width must be positive. Got: {params.histogram_bin_width}")

    logging.info("SimulationParameters object created successfully.")
    return params


def load_parameters(config_path: str, schema_path: Optional[str] = None) -> SimulationParameters:
    """Loads, validates (schema and logic), and processes parameters from a YAML file."""
    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration file {config_path} does not contain a mapping.")
    return parameters_from_dict(config, schema_path)
