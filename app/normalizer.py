"""
Map catalog-native items onto the shared result record.

Required upstream fields are indexed directly: a missing one raises and fails
the whole response. Only ``author`` is defaulted.
"""
from typing import Any, Dict

from .schemas import NOT_AVAILABLE, NormalizedResult


def date_part(timestamp: str) -> str:
    return timestamp.split("T")[0]


def normalize_kaggle(item: Dict[str, Any]) -> NormalizedResult:
    ref = item["ref"]
    return NormalizedResult(
        id=ref,
        title=item.get("title"),
        source="Kaggle",
        author=item.get("ownerName") or NOT_AVAILABLE,
        url=f"https://www.kaggle.com/datasets/{ref}",
        # The CLI listing has no update timestamp.
        lastUpdated=NOT_AVAILABLE,
        tags=[],
    )


def normalize_huggingface(item: Dict[str, Any]) -> NormalizedResult:
    dataset_id = item["id"]
    return NormalizedResult(
        id=dataset_id,
        title=dataset_id,
        source="Hugging Face",
        author=item.get("author") or NOT_AVAILABLE,
        url=f"https://huggingface.co/datasets/{dataset_id}",
        lastUpdated=date_part(item["lastModified"]),
        tags=item.get("tags") or [],
    )


def normalize_ckan(item: Dict[str, Any]) -> NormalizedResult:
    organization = item.get("organization") or {}
    return NormalizedResult(
        id=item["id"],
        title=item.get("title"),
        source="data.gov (CKAN)",
        author=organization.get("title") or NOT_AVAILABLE,
        url=f"https://catalog.data.gov/dataset/{item['name']}",
        lastUpdated=date_part(item["metadata_modified"]),
        tags=[tag["display_name"] for tag in item["tags"]],
    )
