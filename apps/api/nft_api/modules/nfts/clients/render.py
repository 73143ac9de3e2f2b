from __future__ import annotations

import json
import shutil
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from nft_api.core.errors import RenderFailed
from nft_api.core.ids import new_ulid

from ..variables import slugify
from .base import RenderJobSpec, RenderResult

Renderer = Callable[[RenderJobSpec], RenderResult]


class LocalRenderJob:
    def __init__(self, job_id: str, spec: RenderJobSpec, future: "Future[RenderResult]") -> None:
        self.job_id = job_id
        self.spec = spec
        self._future = future

    def wait(self, timeout: Optional[float] = None) -> RenderResult:
        try:
            return self._future.result(timeout=timeout)
        except FutureTimeoutError as e:
            # the worker keeps running; its output is never published
            self._future.cancel()
            raise RenderFailed(
                f"render job {self.job_id} timed out after {timeout}s",
                details={"job_id": self.job_id, "token_id": self.spec.token_id},
            ) from e
        except RenderFailed:
            raise
        except Exception as e:
            raise RenderFailed(
                f"render job {self.job_id} failed: {e}",
                details={"job_id": self.job_id, "token_id": self.spec.token_id, "type": type(e).__name__},
            ) from e


class LocalRenderQueue:
    """
    In-process render queue: a bounded thread pool running a Renderer callable.
    Stands in for the offline render worker.
    """
    name = "local"

    def __init__(self, renderer: Renderer, *, max_workers: int = 2) -> None:
        self.renderer = renderer
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="render")

    def submit(self, spec: RenderJobSpec) -> LocalRenderJob:
        job_id = new_ulid()
        return LocalRenderJob(job_id, spec, self._pool.submit(self.renderer, spec))

    def shutdown(self) -> None:
        self._pool.shutdown(wait=False, cancel_futures=True)


class FileCopyRenderer:
    """
    Minimal renderer:
    - copies <template_dir>/<hero tier>.png to <output_dir>/<token_id>.png
    - writes a <token_id>.json sidecar with the job spec
    """

    def __init__(self, template_dir: Path, output_dir: Path) -> None:
        self.template_dir = Path(template_dir)
        self.output_dir = Path(output_dir)

    def __call__(self, spec: RenderJobSpec) -> RenderResult:
        template = self.template_dir / f"{slugify(spec.hero_tier)}.png"
        if not template.is_file():
            raise FileNotFoundError(f"no render template for hero tier {spec.hero_tier!r}: {template}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        out_file = self.output_dir / f"{spec.token_id}.png"
        shutil.copyfile(template, out_file)

        sidecar: Dict[str, Any] = {
            "token_id": spec.token_id,
            "token_address": spec.token_address,
            "hero_tier": spec.hero_tier,
            "recipe": spec.recipe,
            "cosmetic_traits": spec.cosmetic_traits,
            "ts": time.time(),
        }
        (self.output_dir / f"{spec.token_id}.json").write_text(
            json.dumps(sidecar, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        return RenderResult(image_path=out_file, details={"template": str(template)})
