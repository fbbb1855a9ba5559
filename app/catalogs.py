from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .ckan import CkanCatalog
from .config import AppSettings
from .huggingface import HuggingFaceCatalog
from .kaggle import KaggleCatalog
from .normalizer import normalize_ckan, normalize_huggingface, normalize_kaggle
from .schemas import NormalizedResult


DETAILS_NOT_AVAILABLE = {"message": "Detailed view is not yet available for this source."}

SearchFn = Callable[[str], Awaitable[List[Dict[str, Any]]]]
DetailsFn = Callable[[str], Awaitable[Dict[str, Any]]]
NormalizeFn = Callable[[Dict[str, Any]], NormalizedResult]


@dataclass
class CatalogEntry:
    label: str
    display_name: str
    search: SearchFn
    normalize: NormalizeFn
    get_details: Optional[DetailsFn] = None
    aliases: Tuple[str, ...] = ()

    def names(self) -> List[str]:
        return [n.strip().lower() for n in (self.label, self.display_name, *self.aliases)]


@dataclass
class CatalogRegistry:
    entries: List[CatalogEntry] = field(default_factory=list)
    default_label: Optional[str] = None

    def register(self, entry: CatalogEntry, default: bool = False) -> None:
        self.entries.append(entry)
        if default or self.default_label is None:
            self.default_label = entry.label

    def lookup(self, label: Optional[str]) -> Optional[CatalogEntry]:
        """Case-insensitive match against label, display name and aliases."""
        if not label:
            return None
        key = label.strip().lower()
        for entry in self.entries:
            if key in entry.names():
                return entry
        return None

    def resolve(self, label: Optional[str]) -> CatalogEntry:
        """Like ``lookup`` but unknown labels fall back to the default catalog."""
        entry = self.lookup(label)
        if entry is not None:
            return entry
        default = self.lookup(self.default_label)
        if default is None:
            raise LookupError("catalog registry is empty")
        return default

    async def search(self, label: Optional[str], keywords: str) -> List[NormalizedResult]:
        entry = self.resolve(label)
        items = await entry.search(keywords)
        return [entry.normalize(item) for item in items]

    async def get_details(self, label: Optional[str], dataset_id: str) -> Dict[str, Any]:
        entry = self.lookup(label)
        if entry is None or entry.get_details is None:
            return dict(DETAILS_NOT_AVAILABLE)
        return await entry.get_details(dataset_id)


@dataclass
class Catalogs:
    kaggle: KaggleCatalog
    ckan: CkanCatalog
    huggingface: HuggingFaceCatalog

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "Catalogs":
        return cls(
            kaggle=KaggleCatalog(settings.kaggle_cli_path, timeout_s=settings.kaggle_timeout_s),
            ckan=CkanCatalog(settings.ckan_base_url, rows=settings.ckan_rows, timeout=settings.http_timeout_s),
            huggingface=HuggingFaceCatalog(
                settings.hf_base_url, limit=settings.hf_limit, timeout=settings.http_timeout_s
            ),
        )

    def build_registry(self) -> CatalogRegistry:
        registry = CatalogRegistry()
        registry.register(
            CatalogEntry(
                label="Kaggle",
                display_name="Kaggle",
                search=self.kaggle.search,
                get_details=self.kaggle.get_details,
                normalize=normalize_kaggle,
            )
        )
        registry.register(
            CatalogEntry(
                label="HuggingFace",
                display_name="Hugging Face",
                search=self.huggingface.search,
                normalize=normalize_huggingface,
            )
        )
        registry.register(
            CatalogEntry(
                label="CKAN",
                display_name="data.gov (CKAN)",
                search=self.ckan.search,
                get_details=self.ckan.get_details,
                normalize=normalize_ckan,
                aliases=("data.gov",),
            ),
            default=True,
        )
        return registry

    async def close(self) -> None:
        await self.kaggle.close()
        await self.ckan.close()
        await self.huggingface.close()
