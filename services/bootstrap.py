"""Startup wiring: corpus index, flow tuning, optional generator route, session service."""
from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import Optional, Tuple

from agents.flow_manager import FlowConfig, FlowDeps
from config.app_config import AppConfig, load_config
from config.registry import GENERATOR_KEY, bind_model, unbind_model
from config.settings import Settings, settings as default_settings
from llm_gateway import generate_turn
from retrieval.retriever import load_index
from services.sessions import InterviewSessionService, SessionStore

logger = logging.getLogger(__name__)


def _app_config(settings: Settings) -> AppConfig:
    if not settings.APP_CONFIG_PATH:
        return AppConfig()
    path = Path(settings.APP_CONFIG_PATH)
    if not path.exists():
        logger.warning("App config %s not found; generator disabled", path)
        return AppConfig()
    return load_config(path)


def load_deps(settings: Optional[Settings] = None) -> Tuple[FlowDeps, FlowConfig]:
    """Build the shared corpus index and flow tuning, and bind the generator when one is configured."""

    settings = settings or default_settings
    app_cfg = _app_config(settings)

    flow = dict(app_cfg.flow)
    flow.setdefault("max_attempts", settings.MAX_REPEAT_ATTEMPTS)
    flow.setdefault("retrieval_k", settings.RETRIEVAL_K)
    cfg = FlowConfig.model_validate(flow)

    route = app_cfg.generator()
    if route is not None:
        bind_model(GENERATOR_KEY, partial(generate_turn, cfg=route))
        logger.info("Turn generator bound to route %s (%s)", route.name, route.model)
    else:
        unbind_model(GENERATOR_KEY)

    deps = FlowDeps(retriever=load_index(settings))
    return deps, cfg


def build_service(settings: Optional[Settings] = None) -> InterviewSessionService:
    settings = settings or default_settings
    deps, cfg = load_deps(settings)
    return InterviewSessionService(
        SessionStore(settings.CHECKPOINT_DIR),
        deps,
        cfg,
        history_window=settings.HISTORY_WINDOW,
        default_traffic_load=settings.DEFAULT_TRAFFIC_LOAD,
    )


__all__ = ["build_service", "load_deps"]
