import json

import pytest

from agents.flow_manager import FlowConfig
from config.app_config import AppConfig, load_config
from config.registry import GENERATOR_KEY, bind_model, get_model, has_model, unbind_model
from config.settings import Settings
from services.bootstrap import build_service, load_deps


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.CORPUS_CHUNKS_PATH.endswith("chunks.json")
    assert settings.DEFAULT_TRAFFIC_LOAD == 1000.0
    assert settings.MAX_REPEAT_ATTEMPTS == 5
    assert settings.HISTORY_WINDOW == 10


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("RETRIEVAL_K", "3")
    assert Settings(_env_file=None).RETRIEVAL_K == 3


def test_registry_bind_and_retrieve():
    marker = object()
    bind_model(GENERATOR_KEY, lambda *_: marker)
    assert has_model(GENERATOR_KEY)
    assert get_model(GENERATOR_KEY)() is marker
    unbind_model(GENERATOR_KEY)
    with pytest.raises(KeyError):
        get_model(GENERATOR_KEY)


def test_app_config_missing_route_raises():
    cfg = AppConfig(generator_route="nope")
    with pytest.raises(KeyError):
        cfg.generator()
    assert AppConfig().generator() is None


def _write_config(tmp_path, **extra):
    data = {
        "llm_routes": {
            "gen": {
                "name": "gen",
                "base_url": "http://llm.local",
                "endpoint": "/v1/chat/completions",
                "model": "interviewer-small",
                "timeout_s": 4,
            }
        },
        "generator_route": "gen",
        "flow": {"max_attempts": 3, "angles": ["failure", "cost"]},
    }
    data.update(extra)
    path = tmp_path / "app_config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_config_reads_json(tmp_path):
    cfg = load_config(_write_config(tmp_path))
    assert cfg.generator().model == "interviewer-small"


def test_load_deps_binds_generator_and_flow(tmp_path, docs_dir):
    settings = Settings(
        _env_file=None,
        APP_CONFIG_PATH=str(_write_config(tmp_path)),
        CORPUS_CHUNKS_PATH=str(tmp_path / "absent.json"),
        CORPUS_DOCS_DIR=str(docs_dir),
        RETRIEVAL_K=4,
    )
    deps, cfg = load_deps(settings)
    assert isinstance(cfg, FlowConfig)
    assert cfg.max_attempts == 3
    assert cfg.retrieval_k == 4
    assert cfg.angles == ["failure", "cost"]
    assert len(deps.retriever) > 0
    assert has_model(GENERATOR_KEY)


def test_build_service_without_app_config(tmp_path):
    settings = Settings(
        _env_file=None,
        CORPUS_CHUNKS_PATH=str(tmp_path / "absent.json"),
        CORPUS_DOCS_DIR=str(tmp_path / "no-docs"),
        DEFAULT_TRAFFIC_LOAD=2500,
        MAX_REPEAT_ATTEMPTS=2,
    )
    service = build_service(settings)
    assert not has_model(GENERATOR_KEY)
    assert service.cfg.max_attempts == 2
    assert service.default_traffic_load == 2500
