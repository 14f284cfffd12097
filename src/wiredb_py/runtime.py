from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
from botocore.config import Config

from .transport import Boto3Transport

logger = logging.getLogger(__name__)

RETRY_COUNT = 10
ENDPOINT_TEMPLATE = "https://dynamodb.{region}.amazonaws.com/"


@dataclass(frozen=True)
class AwsCallMetric:
    service: str
    operation: str
    seconds: float
    ok: bool


@dataclass(frozen=True)
class ClientConfig:
    region: str | None = None
    endpoint_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    connect_timeout: float = 5.0
    read_timeout: float = 30.0
    max_attempts: int = RETRY_COUNT
    debug: bool = False

    @staticmethod
    def from_env(environ: Mapping[str, str] = os.environ) -> ClientConfig:
        region = (
            environ.get("WIREDB_REGION") or environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or None
        )
        return ClientConfig(
            region=region,
            endpoint_url=(environ.get("WIREDB_ENDPOINT_URL") or "").strip() or None,
            access_key=environ.get("AWS_ACCESS_KEY_ID") or None,
            secret_key=environ.get("AWS_SECRET_ACCESS_KEY") or None,
            debug=(environ.get("WIREDB_DEBUG") or "").strip().lower() in {"1", "true", "yes"},
        )

    def resolved_endpoint(self) -> str | None:
        if self.endpoint_url:
            return resolve_endpoint(self.endpoint_url)
        return None


def resolve_endpoint(region_or_url: str) -> str:
    """Return a full endpoint URL for a region name; URLs pass through unchanged."""
    value = region_or_url.strip()
    if not value:
        raise ValueError("region or endpoint is required")
    if "://" in value:
        return value
    return ENDPOINT_TEMPLATE.format(region=value)


def create_boto3_config(
    *,
    connect_timeout: float = 5.0,
    read_timeout: float = 30.0,
    max_attempts: int = RETRY_COUNT,
) -> Config:
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "standard"},
    )


class _InstrumentedClient:
    def __init__(self, client: Any, service: str, on_call: Callable[[AwsCallMetric], None]) -> None:
        self._client = client
        self._service = service
        self._on_call = on_call

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if name.startswith("_") or not callable(attr):
            return attr

        def wrapped(*args: Any, **kwargs: Any) -> Any:
            start = time.monotonic()
            ok = False
            try:
                out = attr(*args, **kwargs)
                ok = True
                return out
            finally:
                self._on_call(
                    AwsCallMetric(
                        service=self._service,
                        operation=name,
                        seconds=time.monotonic() - start,
                        ok=ok,
                    )
                )

        return wrapped


def instrument_boto3_client(
    client: Any,
    *,
    service: str,
    on_call: Callable[[AwsCallMetric], None],
) -> Any:
    return _InstrumentedClient(client, service, on_call)


def _client_kwargs(config: ClientConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "region_name": config.region,
        "config": create_boto3_config(
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_attempts=config.max_attempts,
        ),
    }
    endpoint = config.resolved_endpoint()
    if endpoint:
        kwargs["endpoint_url"] = endpoint
    if config.access_key and config.secret_key:
        kwargs["aws_access_key_id"] = config.access_key
        kwargs["aws_secret_access_key"] = config.secret_key
    return kwargs


def create_transport(
    config: ClientConfig | None = None,
    *,
    session: Any | None = None,
    metrics: Callable[[AwsCallMetric], None] | None = None,
) -> Boto3Transport:
    config = config or ClientConfig.from_env()
    if config.debug:
        boto3.set_stream_logger("botocore", logging.DEBUG)

    sess = session or boto3.session.Session(region_name=config.region)
    kwargs = _client_kwargs(config)
    client = cast(Any, sess).client("dynamodb", **kwargs)
    streams_client = cast(Any, sess).client("dynamodbstreams", **kwargs)
    if metrics is not None:
        client = instrument_boto3_client(client, service="dynamodb", on_call=metrics)
        streams_client = instrument_boto3_client(streams_client, service="dynamodbstreams", on_call=metrics)

    logger.debug("created transport region=%s endpoint=%s", config.region, kwargs.get("endpoint_url"))
    return Boto3Transport(client, streams_client=streams_client)

