from pathlib import Path

import pytest

from batchboard.config import constants as C
from batchboard.config.board import BoardCfg, load_board_cfg
from batchboard.config.env import load_cfg

ENV_KEYS = ["API_BASE_URL", "WS_URL", "API_TOKEN", "BATCH_ID", "CACHE_DIR", "HTTP_TIMEOUT", "HTTP_RETRIES"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)


def test_load_cfg_reads_env_file(tmp_path):
    env = tmp_path / ".env.staging"
    env.write_text("API_BASE_URL=http://api.test/api\nAPI_TOKEN=abc\nHTTP_RETRIES=4\n")
    cfg = load_cfg(str(env))
    assert cfg.api_base_url == "http://api.test/api"
    assert cfg.api_token == "abc"
    assert cfg.http_retries == 4
    assert cfg.http_timeout == 10.0
    assert cfg.ws_url == "ws://localhost:5000/ws"
    assert cfg.batch_id is None


def test_load_cfg_requires_base_url(tmp_path):
    env = tmp_path / ".env"
    env.write_text("API_TOKEN=abc\n")
    with pytest.raises(KeyError):
        load_cfg(str(env))


def test_board_cfg_defaults_when_file_missing(tmp_path):
    cfg = load_board_cfg(str(tmp_path / "nope.yml"))
    assert cfg == BoardCfg()
    assert cfg.ttl_for("contest") == C.TTL_SHORT
    assert cfg.ttl_for("external") == C.TTL_VERY_LONG
    assert cfg.ttl_for("unknown-view") == C.TTL_MEDIUM


def test_partial_ttl_section_keeps_other_defaults(tmp_path):
    path = tmp_path / "board.yml"
    path.write_text("ttl:\n  batch: 5\nfilters:\n  section: A\n  branch:\npage_limit: 20\n")
    cfg = load_board_cfg(str(path))
    assert cfg.ttl_for("batch") == 5
    assert cfg.ttl_for("rank") == C.TTL_LONG
    assert cfg.filters == {"section": "A"}
    assert cfg.page_limit == 20
    assert cfg.rank_by == "overall_score"


def test_shipped_board_cfg_matches_defaults():
    cfg = load_board_cfg(str(Path(__file__).parent.parent / "configs" / "board.yml"))
    assert cfg.ttl == BoardCfg().ttl
