"""Configuration helpers for the auction server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml

_DEFAULT_SERVER_CONFIG = Path(__file__).resolve().parent / "server.yaml"


@dataclass(frozen=True)
class BackendConfig:
    backend: str
    options: Mapping[str, Any]


@dataclass(frozen=True)
class ChannelConfig:
    backend: str
    options: Mapping[str, Any]
    resubscribe_delay_seconds: float


@dataclass(frozen=True)
class AuctionConfig:
    duration_seconds: int
    tick_seconds: float
    snipe_threshold_seconds: int
    snipe_extension_seconds: int
    house_bidder: str
    sold_message: str


@dataclass(frozen=True)
class ServerConfig:
    listen: Mapping[str, Any]
    state: BackendConfig
    channel: ChannelConfig
    persistence: BackendConfig
    auction: AuctionConfig


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return yaml.safe_load(path.read_text()) or {}


def _backend(section: Mapping[str, Any]) -> BackendConfig:
    return BackendConfig(
        backend=str(section.get("backend", "in_memory")),
        options=dict(section.get("options") or {}),
    )


def load_server_config(path: Path) -> ServerConfig:
    data = _load_yaml(path)
    channel = data.get("channel", {})
    auction = data.get("auction", {})
    return ServerConfig(
        listen=data.get("listen", {}),
        state=_backend(data.get("state", {})),
        channel=ChannelConfig(
            backend=str(channel.get("backend", "in_memory")),
            options=dict(channel.get("options") or {}),
            resubscribe_delay_seconds=float(channel.get("resubscribe_delay_seconds", 1.0)),
        ),
        persistence=_backend(data.get("persistence", {})),
        auction=AuctionConfig(
            duration_seconds=int(auction.get("duration_seconds", 60)),
            tick_seconds=float(auction.get("tick_seconds", 1.0)),
            snipe_threshold_seconds=int(auction.get("snipe_threshold_seconds", 10)),
            snipe_extension_seconds=int(auction.get("snipe_extension_seconds", 10)),
            house_bidder=str(auction.get("house_bidder", "House")),
            sold_message=str(auction.get("sold_message", "SOLD!")),
        ),
    )


@lru_cache(maxsize=1)
def get_server_config() -> ServerConfig:
    path = Path(os.getenv("LIVEBID_CONFIG_PATH", _DEFAULT_SERVER_CONFIG))
    return load_server_config(path)
