"""
Bedrock Runtime — Clients for the AWS Bedrock backend.

Two auth modes, one ``invoke_model(modelId=..., body=...)`` shape:
  1. API bearer token (``aws_bearer_token_bedrock``): plain HTTPS via httpx
  2. boto3 ``bedrock-runtime`` client on the standard credential chain

Both return a dict whose ``body`` is a readable stream, like boto3 does.
"""

from __future__ import annotations

import io
import logging
from typing import Any
from urllib.parse import quote

import boto3
import httpx
from botocore.config import Config

from pagelens.config import Settings

logger = logging.getLogger("pagelens.llm.bedrock")


class BearerTokenRuntime:
    """Bedrock ``InvokeModel`` over HTTPS, authenticated with an API bearer token."""

    def __init__(
        self,
        token: str,
        region: str = "us-east-1",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.endpoint = f"https://bedrock-runtime.{region}.amazonaws.com"
        self.timeout = timeout
        self._token = token
        self._http_client = http_client

    def invoke_url(self, model_id: str) -> str:
        return f"{self.endpoint}/model/{quote(model_id, safe='')}/invoke"

    def invoke_model(self, *, modelId: str, body: str | bytes) -> dict[str, Any]:
        payload = body.encode("utf-8") if isinstance(body, str) else body
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        url = self.invoke_url(modelId)
        logger.debug(f"Bedrock invoke {modelId} ({len(payload)} bytes)")
        if self._http_client is not None:
            response = self._http_client.post(url, content=payload, headers=headers, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, content=payload, headers=headers)
        # HTTPStatusError is translated by the provider (429 → RateLimitError)
        response.raise_for_status()
        return {
            "body": io.BytesIO(response.content),
            "contentType": response.headers.get("content-type", "application/json"),
        }


def runtime_client(settings: Settings, timeout: float = 30.0) -> Any:
    """Bearer-token client when a token is configured, else boto3 with SDK retries off."""
    region = settings.aws_default_region
    token = (settings.aws_bearer_token_bedrock or "").strip()
    if token:
        logger.info(f"Bedrock: bearer token auth (region={region})")
        return BearerTokenRuntime(token, region, timeout)

    logger.info(f"Bedrock: boto3 credential chain (region={region})")
    config = Config(read_timeout=timeout, connect_timeout=min(timeout, 10), retries={"total_max_attempts": 1})
    return boto3.client("bedrock-runtime", region_name=region, config=config)
