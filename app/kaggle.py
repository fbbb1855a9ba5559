import asyncio
import json
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .errors import CatalogError, CatalogUnavailableError


logger = logging.getLogger("uvicorn.error")

SOURCE_NAME = "Kaggle"
_DEFAULT_TIMEOUT_S = 60.0
_COLUMN_SPLIT_RE = re.compile(r"\s{2,}")
_METADATA_FILES = ("datapackage.json", "dataset-metadata.json")
_AUTH_MARKERS = ("401", "unauthorized", "kaggle.json", "credentials")
NO_METADATA_MESSAGE = "This Kaggle dataset does not have a detailed datapackage.json metadata file."


def parse_cli_table(stdout: str) -> List[Dict[str, Optional[str]]]:
    """Parse the column-aligned listing printed by ``kaggle datasets list``."""
    lines = (stdout or "").strip().splitlines()
    if len(lines) < 3:
        return []
    headers = [h.strip() for h in _COLUMN_SPLIT_RE.split(lines[0].strip())]
    rows: List[Dict[str, Optional[str]]] = []
    # lines[1] is the dashed separator under the header
    for line in lines[2:]:
        if not line.strip():
            continue
        values = [v.strip() for v in _COLUMN_SPLIT_RE.split(line.strip())]
        rows.append({header: values[idx] if idx < len(values) else None for idx, header in enumerate(headers)})
    return rows


def _looks_like_auth_failure(output: str) -> bool:
    lower = (output or "").lower()
    return any(marker in lower for marker in _AUTH_MARKERS)


class KaggleCatalog:
    """Wraps the ``kaggle`` command-line tool. Arguments never pass through a shell."""

    def __init__(self, cli_path: str = "kaggle", timeout_s: float = _DEFAULT_TIMEOUT_S) -> None:
        self.cli_path = cli_path or "kaggle"
        self.timeout_s = timeout_s

    async def _run_cli(self, args: List[str], timeout_s: Optional[float] = None) -> Tuple[int, str, str]:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.cli_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            logger.error("Kaggle CLI not found at %r", self.cli_path)
            raise CatalogUnavailableError(
                SOURCE_NAME,
                "Kaggle is unavailable: the kaggle command-line tool is not installed on the server.",
            ) from exc
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_s or self.timeout_s)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            logger.error("Kaggle CLI timed out: %s", args)
            raise CatalogError(SOURCE_NAME) from exc
        except asyncio.CancelledError:
            proc.kill()
            await proc.wait()
            raise
        return (
            proc.returncode if proc.returncode is not None else -1,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    def _raise_for_exit(self, code: int, stdout: str, stderr: str) -> None:
        if code == 0:
            return
        output = stderr or stdout
        logger.error("Kaggle CLI Error (exit %s): %s", code, output.strip())
        if _looks_like_auth_failure(output):
            raise CatalogUnavailableError(
                SOURCE_NAME,
                "Kaggle is unavailable: the server's Kaggle credentials are missing or invalid.",
            )
        raise CatalogError(SOURCE_NAME, details={"exit_code": code})

    async def search(self, keywords: str) -> List[Dict[str, Any]]:
        code, stdout, stderr = await self._run_cli(["datasets", "list", f"--search={keywords}"])
        self._raise_for_exit(code, stdout, stderr)
        return parse_cli_table(stdout)

    async def get_details(self, dataset_id: str) -> Dict[str, Any]:
        prefix = dataset_id.replace("/", "_") + "_"
        temp_dir = Path(tempfile.mkdtemp(prefix=prefix))
        try:
            code, stdout, stderr = await self._run_cli(["datasets", "metadata", dataset_id, "-p", str(temp_dir)])
            self._raise_for_exit(code, stdout, stderr)
            for filename in _METADATA_FILES:
                path = temp_dir / filename
                if not path.exists():
                    continue
                try:
                    return json.loads(path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as exc:
                    logger.error("Failed to read Kaggle metadata file %s: %s", path, exc)
                    raise CatalogError(SOURCE_NAME, "Failed to read Kaggle metadata file.") from exc
            return {"name": dataset_id, "resources": [], "message": NO_METADATA_MESSAGE}
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def close(self) -> None:
        return None
