"""
Configuration utilities for GraphFront
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from omegaconf import OmegaConf


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    if config_path.suffix in ['.yaml', '.yml']:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
    elif config_path.suffix == '.json':
        with open(config_path, 'r') as f:
            config = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {config_path.suffix}")

    # Resolve environment variables
    config = resolve_env_vars(config)

    return config


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge multiple configuration dictionaries

    Later configs override earlier ones; lists are replaced, not appended
    """
    merged = OmegaConf.merge(*[OmegaConf.create(config) for config in configs])
    return OmegaConf.to_container(merged, resolve=True)


def resolve_env_vars(config: Any) -> Any:
    """
    Resolve environment variables in configuration

    Supports ${ENV_VAR} and ${ENV_VAR:default} syntax
    """
    if isinstance(config, str):
        if config.startswith('${') and config.endswith('}'):
            env_var = config[2:-1]

            if ':' in env_var:
                var_name, default = env_var.split(':', 1)
                return os.environ.get(var_name, default)
            else:
                return os.environ.get(env_var, config)
        return config

    elif isinstance(config, dict):
        return {k: resolve_env_vars(v) for k, v in config.items()}

    elif isinstance(config, list):
        return [resolve_env_vars(item) for item in config]

    return config


def save_config(config: Dict[str, Any], filepath: Union[str, Path]):
    """Save configuration to file"""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if filepath.suffix in ['.yaml', '.yml']:
        with open(filepath, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
    elif filepath.suffix == '.json':
        with open(filepath, 'w') as f:
            json.dump(config, f, indent=2)
    else:
        raise ValueError(f"Unsupported format: {filepath.suffix}")


def create_default_config() -> Dict[str, Any]:
    """Create default GraphFront worker configuration"""
    return {
        'graph': {
            'path': './dataset/dataset.txt',
            'format': 'edgelist',
            'num_objectives': 2,
            'max_nodes': None
        },
        'pareto': {
            'source': 0,
            'track_paths': False
        },
        'incremental': {
            'evict_dominated': False,
            'max_front_size': None,
            'max_rounds': None,
            'num_threads': 1,
            'recompute_every': None
        },
        'partitioner': {
            'num_parts': None,
            'refinement_iterations': 10,
            'balance_tolerance': 0.1,
            'seed': 42
        },
        'report': {
            'sample_size': 3
        },
        'logging': {
            'level': 'INFO',
            'structured': True,
            'log_file': None
        },
        'mutations': []
    }


class ConfigValidator:
    """Validate configuration against schema"""

    @staticmethod
    def validate_worker_config(config: Dict[str, Any]) -> bool:
        """Validate worker configuration"""
        required_keys = ['graph', 'pareto', 'incremental', 'partitioner']

        for key in required_keys:
            if key not in config:
                raise ValueError(f"Missing required config key: {key}")

        graph = config['graph']
        if not graph.get('path'):
            raise ValueError("Graph path is required")
        if graph.get('format') not in ['edgelist', 'metis']:
            raise ValueError(f"Invalid graph format: {graph.get('format')}")
        if int(graph.get('num_objectives', 0)) < 1:
            raise ValueError("num_objectives must be >= 1")

        if int(config['pareto'].get('source', -1)) < 0:
            raise ValueError("source must be a non-negative node id")

        incremental = config['incremental']
        for key in ['max_front_size', 'max_rounds', 'recompute_every']:
            value = incremental.get(key)
            if value is not None and int(value) < 1:
                raise ValueError(f"{key} must be positive when set")
        if int(incremental.get('num_threads', 1)) < 1:
            raise ValueError("num_threads must be >= 1")

        num_parts = config['partitioner'].get('num_parts')
        if num_parts is not None and int(num_parts) <= 0:
            raise ValueError("num_parts must be positive when set")

        for mutation in config.get('mutations', []) or []:
            if mutation.get('op') not in ['insert', 'update', 'remove']:
                raise ValueError(f"Invalid mutation op: {mutation.get('op')}")
            if 'from' not in mutation or 'to' not in mutation:
                raise ValueError("Mutations need 'from' and 'to'")
            if mutation['op'] != 'remove' and 'cost' not in mutation:
                raise ValueError(f"Mutation {mutation['op']} needs 'cost'")

        return True
