# config environment
import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel

class Cfg(BaseModel):
    api_base_url: str
    ws_url: str
    api_token: Optional[str] = None
    batch_id: Optional[str] = None
    cache_dir: str
    http_timeout: float
    http_retries: int

def load_cfg(env_file: str) -> Cfg:
    load_dotenv(env_file)
    return Cfg(
        api_base_url=os.environ["API_BASE_URL"],
        ws_url=os.environ.get("WS_URL", "ws://localhost:5000/ws"),
        api_token=os.environ.get("API_TOKEN") or None,
        batch_id=os.environ.get("BATCH_ID") or None,
        cache_dir=os.environ.get("CACHE_DIR", ".batchboard-cache"),
        http_timeout=float(os.environ.get("HTTP_TIMEOUT","10")),
        http_retries=int(os.environ.get("HTTP_RETRIES","2")),
    )
