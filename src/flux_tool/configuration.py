from typing import Optional
from pydantic_settings import BaseSettings


class Configuration(BaseSettings):
    bfl_api_key: Optional[str] = None
    bfl_api_base: str = "https://api.bfl.ai"
    flux_output_dir: str = "~/Downloads/flux-generated"
    # seconds
    flux_max_wait_time: float = 300.0
    flux_poll_interval: float = 2.0
    flux_request_timeout: float = 30.0
    log_level: str = "INFO"
    mcp_transport: str = "streamable-http"
    host: str = "0.0.0.0"
    port: int = 8000
