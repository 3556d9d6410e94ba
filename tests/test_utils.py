"""
Unit tests for configuration, metrics and logging utilities
"""

import json
import logging

import pytest
import yaml

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent / "src"))

from graphfront.utils.config import (
    ConfigValidator,
    create_default_config,
    load_config,
    merge_configs,
    resolve_env_vars,
    save_config
)
from graphfront.utils.logger import WorkerLoggerAdapter, setup_logger
from graphfront.utils.metrics import PerformanceTracker


def valid_config(**sections):
    config = create_default_config()
    config['graph']['path'] = 'graph.txt'
    for name, section in sections.items():
        config[name] = section
    return config


class TestConfig:
    """Test suite for configuration loading and validation"""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({'pareto': {'source': 3}}))

        assert load_config(path) == {'pareto': {'source': 3}}

    def test_load_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'report': {'sample_size': 5}}))

        assert load_config(path)['report']['sample_size'] == 5

    def test_load_missing_and_unsupported(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

        path = tmp_path / "config.toml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config(path)

    def test_resolve_env_vars(self, monkeypatch):
        monkeypatch.setenv('GRAPHFRONT_DATA', '/data/graph.txt')
        monkeypatch.delenv('GRAPHFRONT_UNSET', raising=False)

        config = resolve_env_vars({
            'path': '${GRAPHFRONT_DATA}',
            'fallback': '${GRAPHFRONT_UNSET:edges.txt}',
            'items': ['${GRAPHFRONT_DATA}', 'plain']
        })

        assert config['path'] == '/data/graph.txt'
        assert config['fallback'] == 'edges.txt'
        assert config['items'] == ['/data/graph.txt', 'plain']

    def test_merge_configs(self):
        merged = merge_configs(
            create_default_config(),
            {'pareto': {'source': 7}, 'mutations': [{'op': 'remove', 'from': 0, 'to': 1}]},
            {'pareto': {'track_paths': True}}
        )

        assert merged['pareto'] == {'source': 7, 'track_paths': True}
        assert merged['graph']['format'] == 'edgelist'
        assert merged['mutations'] == [{'op': 'remove', 'from': 0, 'to': 1}]

    def test_save_config(self, tmp_path):
        config = create_default_config()
        save_config(config, tmp_path / "out" / "config.yaml")
        save_config(config, tmp_path / "out" / "config.json")

        assert load_config(tmp_path / "out" / "config.yaml") == config
        assert load_config(tmp_path / "out" / "config.json") == config

    def test_validate_default_config(self):
        assert ConfigValidator.validate_worker_config(valid_config())

    @pytest.mark.parametrize("section,values", [
        ('graph', {'path': '', 'format': 'edgelist', 'num_objectives': 2}),
        ('graph', {'path': 'g.txt', 'format': 'csv', 'num_objectives': 2}),
        ('graph', {'path': 'g.txt', 'format': 'metis', 'num_objectives': 0}),
        ('pareto', {'source': -1}),
        ('incremental', {'max_front_size': 0}),
        ('incremental', {'num_threads': 0}),
        ('partitioner', {'num_parts': 0}),
        ('mutations', [{'op': 'swap', 'from': 0, 'to': 1}]),
        ('mutations', [{'op': 'insert', 'from': 0, 'to': 1}]),
        ('mutations', [{'op': 'remove', 'from': 0}]),
    ])
    def test_validate_rejects(self, section, values):
        with pytest.raises(ValueError):
            ConfigValidator.validate_worker_config(valid_config(**{section: values}))

    def test_validate_missing_section(self):
        config = valid_config()
        del config['incremental']
        with pytest.raises(ValueError):
            ConfigValidator.validate_worker_config(config)


class TestPerformanceTracker:
    """Test suite for worker metrics"""

    def test_timers(self):
        tracker = PerformanceTracker()
        tracker.record_time('batch', 0.5)
        tracker.record_time('batch', 1.5)

        stats = tracker.get_timer_stats('batch')
        assert stats['count'] == 2
        assert stats['total'] == 2.0
        assert stats['mean'] == 1.0
        assert tracker.last_time('batch') == 1.5
        assert tracker.last_time('incremental') == 0.0
        assert tracker.get_timer_stats('incremental') == {}

    def test_timer_context(self):
        tracker = PerformanceTracker()
        with tracker.start_timer('partitioning') as timer:
            pass

        assert len(tracker.timers['partitioning']) == 1
        assert timer.duration >= 0.0

    def test_counters_and_gauges(self):
        tracker = PerformanceTracker()
        tracker.increment_counter('mutations')
        tracker.increment_counter('mutations', 2)
        tracker.set_gauge('total_labels', 12)

        summary = tracker.get_summary()
        assert summary['counters'] == {'mutations': 3}
        assert summary['gauges'] == {'total_labels': 12}


class TestWorkerLoggerAdapter:
    """Test suite for rank-prefixed logging"""

    def test_prefixes_rank(self):
        messages = []

        class Recorder:
            def info(self, msg, **kwargs):
                messages.append(msg)

        WorkerLoggerAdapter(Recorder(), rank=2, world_size=4).info("loaded graph")

        assert messages == ["[Worker 2/4] loaded graph"]

    def test_structured_output_renders_every_record_as_json(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        logger = setup_logger(
            name="graphfront.jsontest", level="INFO", log_file=str(log_file), structured=True
        )

        logger.info("structured event", worker=1)
        logging.getLogger("graphfront.jsontest.child").info("plain record %d", 7)
        logging.getLogger("graphfront.jsontest.child").debug("filtered out")
        for handler in logging.getLogger("graphfront.jsontest").handlers:
            handler.flush()

        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert [record['event'] for record in records] == ["structured event", "plain record 7"]
        assert records[0]['worker'] == 1
        assert records[1]['logger'] == "graphfront.jsontest.child"
        assert all(record['level'] == "info" for record in records)
        assert all('timestamp' in record for record in records)
