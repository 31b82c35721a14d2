# per-view board settings (configs/board.yml)
import os
from typing import Dict
import yaml
from pydantic import BaseModel, Field
from batchboard.config import constants as C


class BoardCfg(BaseModel):
    ttl: Dict[str, float] = Field(default_factory=lambda: {
        "batch": C.TTL_MEDIUM,
        "external": C.TTL_VERY_LONG,
        "contest": C.TTL_SHORT,
        "rank": C.TTL_LONG,
        "top": C.TTL_MEDIUM,
    })
    filters: Dict[str, str] = Field(default_factory=dict)
    rank_by: str = "overall_score"
    page_limit: int = 50

    def ttl_for(self, view: str) -> float:
        return float(self.ttl.get(view, C.TTL_MEDIUM))


def load_board_cfg(path: str = C.BOARD_CFG) -> BoardCfg:
    if not os.path.exists(path):
        return BoardCfg()
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    cfg = BoardCfg()
    # partial ttl sections keep the defaults for views they don't mention
    ttl = {**cfg.ttl, **(raw.get("ttl") or {})}
    return BoardCfg(
        ttl=ttl,
        filters={k: str(v) for k, v in (raw.get("filters") or {}).items() if v is not None},
        rank_by=raw.get("rank_by", cfg.rank_by),
        page_limit=int(raw.get("page_limit", cfg.page_limit)),
    )
