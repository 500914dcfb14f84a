"""FastAPI dependencies resolving the services created in the app lifespan."""
from typing import AsyncIterator

from fastapi import Request

from ..analysis.classifier import ClassifierClient
from ..core.config import Settings
from ..crawler.service import CrawlerService
from ..storage.base import KeyValueStore
from ..tasks.processor import BatchProcessor
from ..tasks.registry import TaskRegistry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> TaskRegistry:
    return request.app.state.registry


def get_processor(request: Request) -> BatchProcessor:
    return request.app.state.processor


def get_classifier(request: Request) -> ClassifierClient:
    return request.app.state.classifier


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


async def get_crawler(request: Request) -> AsyncIterator[CrawlerService]:
    """A crawler for one request, closed afterwards."""
    async with CrawlerService(request.app.state.settings) as crawler:
        yield crawler
