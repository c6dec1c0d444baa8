from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping


CONFIG_FILE = Path("config.toml")


@dataclass(slots=True)
class DefaultsConfig:
    dpi: int = 300
    quality: int = 90
    pages: str = "all"
    image_format: str = "jpg"


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("output")
    log_dir: Path = Path("logs")
    log_file: str = "runs.jsonl"
    write_run_log: bool = True
    max_file_size_mb: int = 200
    convert_timeout_s: int = 300
    max_dpi: int = 1200
    max_pages: int = 5000
    max_concurrency: int = 4
    engine: str = "pdftoppm"
    engine_path: str | None = None
    enable_api: bool = True
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)


@dataclass(slots=True)
class StorageConfig:
    backend: str = "local"
    local_dir: Path = Path("data/objects")
    bucket: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    public_base_url: str | None = None
    output_prefix: str = "output/"
    signed_url_ttl_s: int = 3600
    cleanup_max_age_minutes: int = 60
    cleanup_interval_s: int = 3600


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    api: APIConfig = field(default_factory=APIConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(data: Mapping[str, object] | None, key: str) -> Mapping[str, object] | None:
    if not data:
        return None
    value = data.get(key)
    return value if isinstance(value, Mapping) else None


def _optional_str(value: object | None) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _build_defaults(data: Mapping[str, object] | None) -> DefaultsConfig:
    if not data:
        return DefaultsConfig()
    return DefaultsConfig(
        dpi=int(data.get("dpi", 300)),
        quality=int(data.get("quality", 90)),
        pages=str(data.get("pages", "all")),
        image_format=str(data.get("format", data.get("image_format", "jpg"))),
    )


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "output"))),
        log_dir=Path(str(data.get("log_dir", "logs"))),
        log_file=str(data.get("log_file", "runs.jsonl")),
        write_run_log=bool(data.get("write_run_log", True)),
        max_file_size_mb=int(data.get("max_file_size_mb", 200)),
        convert_timeout_s=int(data.get("convert_timeout_s", 300)),
        max_dpi=int(data.get("max_dpi", 1200)),
        max_pages=int(data.get("max_pages", 5000)),
        max_concurrency=int(data.get("max_concurrency", 4)),
        engine=str(data.get("engine", "pdftoppm")),
        engine_path=_optional_str(data.get("engine_path")),
        enable_api=bool(data.get("enable_api", True)),
        defaults=_build_defaults(_section(data, "defaults")),
    )


def _build_storage(data: Mapping[str, object] | None) -> StorageConfig:
    if not data:
        return StorageConfig()
    return StorageConfig(
        backend=str(data.get("backend", "local")),
        local_dir=Path(str(data.get("local_dir", "data/objects"))),
        bucket=_optional_str(data.get("bucket")),
        region=_optional_str(data.get("region")),
        endpoint_url=_optional_str(data.get("endpoint_url")),
        public_base_url=_optional_str(data.get("public_base_url")),
        output_prefix=str(data.get("output_prefix", "output/")),
        signed_url_ttl_s=int(data.get("signed_url_ttl_s", 3600)),
        cleanup_max_age_minutes=int(data.get("cleanup_max_age_minutes", 60)),
        cleanup_interval_s=int(data.get("cleanup_interval_s", 3600)),
    )


def _tuple_of_strings(value: object | None, default: Iterable[str]) -> tuple[str, ...]:
    if not value:
        return tuple(default)
    if isinstance(value, str):
        return tuple(item.strip() for item in value.split(",") if item.strip())
    if isinstance(value, Iterable):
        return tuple(str(item) for item in value)
    raise TypeError(f"Unsupported origins configuration: {value!r}")


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(
        host=str(data.get("host", "127.0.0.1")),
        port=int(data.get("port", 3000)),
        cors_origins=_tuple_of_strings(data.get("cors_origins"), APIConfig().cors_origins),
    )


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        storage=_build_storage(_section(raw, "storage")),
        api=_build_api(_section(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    runtime = config.runtime
    storage = config.storage
    payload = {
        "runtime": {
            "output_dir": str(runtime.output_dir),
            "log_dir": str(runtime.log_dir),
            "log_file": runtime.log_file,
            "write_run_log": runtime.write_run_log,
            "max_file_size_mb": runtime.max_file_size_mb,
            "convert_timeout_s": runtime.convert_timeout_s,
            "max_dpi": runtime.max_dpi,
            "max_pages": runtime.max_pages,
            "max_concurrency": runtime.max_concurrency,
            "engine": runtime.engine,
            "engine_path": runtime.engine_path,
            "enable_api": runtime.enable_api,
            "defaults": {
                "dpi": runtime.defaults.dpi,
                "quality": runtime.defaults.quality,
                "pages": runtime.defaults.pages,
                "format": runtime.defaults.image_format,
            },
        },
        "storage": {
            "backend": storage.backend,
            "local_dir": str(storage.local_dir),
            "bucket": storage.bucket,
            "region": storage.region,
            "endpoint_url": storage.endpoint_url,
            "public_base_url": storage.public_base_url,
            "output_prefix": storage.output_prefix,
            "signed_url_ttl_s": storage.signed_url_ttl_s,
            "cleanup_max_age_minutes": storage.cleanup_max_age_minutes,
            "cleanup_interval_s": storage.cleanup_interval_s,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
            "cors_origins": list(config.api.cors_origins),
        },
    }
    return json.dumps(payload, indent=2)


__all__ = [
    "APIConfig",
    "AppConfig",
    "DefaultsConfig",
    "RuntimeConfig",
    "StorageConfig",
    "dump_config",
    "load_config",
]
