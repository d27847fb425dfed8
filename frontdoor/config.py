from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from frontdoor.core.binder import DEFAULT_INNER_HOST
from frontdoor.core.session import ListenOptions
from frontdoor.ports.proxy import LauncherOptions


@dataclass
class Config:
    app: str  # "package.module:attribute"
    port: str
    host: str = ""
    inner_host: str = DEFAULT_INNER_HOST
    graphql_paths: list[str] = field(default_factory=lambda: ["/graphql"])
    engine_api_key: str = ""
    engine_config_path: str = ""
    proxy_binary: str = ""
    startup_timeout: float = 5.0
    pid_file: str = ""
    log_file: str = "/tmp/frontdoor.log"

    @classmethod
    def from_env(cls) -> Config:
        load_dotenv()
        app = os.environ.get("FRONTDOOR_APP", "")
        port = os.environ.get("PORT", "")
        if not app:
            raise ValueError("FRONTDOOR_APP is required (module:attribute)")
        if not port:
            raise ValueError("PORT is required (port number or named pipe)")
        paths = [
            p.strip()
            for p in os.environ.get("FRONTDOOR_GRAPHQL_PATHS", "/graphql").split(",")
            if p.strip()
        ]
        return cls(
            app=app,
            port=port,
            host=os.environ.get("FRONTDOOR_HOST", ""),
            inner_host=os.environ.get("FRONTDOOR_INNER_HOST", DEFAULT_INNER_HOST),
            graphql_paths=paths or ["/graphql"],
            engine_api_key=os.environ.get("ENGINE_API_KEY", ""),
            engine_config_path=os.environ.get("ENGINE_CONFIG", ""),
            proxy_binary=os.environ.get("FRONTDOOR_PROXY_BINARY", ""),
            startup_timeout=float(os.environ.get("FRONTDOOR_STARTUP_TIMEOUT", "5")),
            pid_file=os.environ.get("FRONTDOOR_PID_FILE", ""),
            log_file=os.environ.get("FRONTDOOR_LOG_FILE", "/tmp/frontdoor.log"),
        )

    def engine_config(self) -> dict | str:
        """Proxy config: the config file path if set, else an inline dict."""
        if self.engine_config_path:
            return self.engine_config_path
        config: dict = {}
        if self.engine_api_key:
            config["apiKey"] = self.engine_api_key
        return config

    def listen_options(self, **source) -> ListenOptions:
        """ListenOptions for this config plus one server source keyword."""
        return ListenOptions(
            port=self.port,
            host=self.host,
            graphql_paths=list(self.graphql_paths),
            inner_host=self.inner_host,
            launcher_options=LauncherOptions(
                startup_timeout=self.startup_timeout,
                binary_path=self.proxy_binary or None,
            ),
            **source,
        )
