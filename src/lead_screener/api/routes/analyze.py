"""One-off classification of already crawled content."""
from fastapi import APIRouter, Depends

from ...analysis.classifier import ClassifierClient
from ...models.analysis import ClassificationResult
from ...models.requests import AnalyzeRequest
from ..dependencies import get_classifier


router = APIRouter()


@router.post(
    "/analyze",
    response_model=ClassificationResult,
    summary="Classify crawled content",
    description="Send crawled site content to the configured model and return a Y/N verdict"
)
async def analyze(
    request: AnalyzeRequest,
    classifier: ClassifierClient = Depends(get_classifier)
) -> ClassificationResult:
    return await classifier.classify(request.config, request.crawled_content)
