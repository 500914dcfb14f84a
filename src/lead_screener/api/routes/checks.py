"""
Connection checks used by the dashboard settings page.

``/test-api`` sends a short prompt to the configured chat-completion
endpoint; ``/test-proxy`` loads a test page through one or more proxies.
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends

from ...analysis.classifier import ClassifierClient
from ...core.config import Settings
from ...core.errors import InvalidRequestError
from ...crawler.fetcher import check_proxy
from ...models.analysis import ConnectionCheck
from ...models.requests import ApiTestRequest, ProxyConfig, ProxyTestRequest
from ...models.responses import ProxyBatchCheckResponse, ProxyCheckResponse, ProxyStatus
from ...models.task import utc_now
from ..dependencies import get_classifier, get_settings


router = APIRouter()


async def _check(proxy: ProxyConfig, test_url: Optional[str], config: Settings) -> ProxyStatus:
    error = await check_proxy(proxy.url, test_url, config)
    return ProxyStatus(
        type=proxy.type,
        host=proxy.host,
        port=proxy.port,
        username=proxy.username,
        status="failed" if error else "working",
        last_checked=utc_now(),
        error=error,
    )


@router.post(
    "/test-api",
    response_model=ConnectionCheck,
    response_model_exclude_none=True,
    summary="Check an LLM configuration",
    description="Send a short prompt to the endpoint and report the outcome and round trip time"
)
async def check_api(
    request: ApiTestRequest,
    classifier: ClassifierClient = Depends(get_classifier)
) -> ConnectionCheck:
    """
    Missing key, URL or model name is a 400 ``config_error``. Endpoint
    failures are a 200 with ``status: error`` and the failure code.
    """
    return await classifier.check_connection(request.config)


@router.post(
    "/test-proxy",
    summary="Check proxies",
    description="Fetch a test page through one proxy or a list of proxies"
)
async def check_proxies(
    request: ProxyTestRequest,
    config: Settings = Depends(get_settings)
):
    if request.proxy is not None:
        result = await _check(request.proxy, request.test_url, config)
        return ProxyCheckResponse(result=result)

    if request.proxies:
        results = await asyncio.gather(
            *(_check(proxy, request.test_url, config) for proxy in request.proxies)
        )
        return ProxyBatchCheckResponse(results=list(results))

    raise InvalidRequestError("proxy or proxies is required")
