from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from shotreview.services.paths import CURRENT_PREFIX, DIFF_PREFIX, REF_PREFIX
from shotreview.services.review_app import ReviewApp, ReviewAppDep

router = APIRouter(tags=["artifacts"])


def _serve(root: Path, artifact_path: str) -> FileResponse:
    resolved_root = root.resolve()
    target = (resolved_root / artifact_path).resolve()

    if not target.is_relative_to(resolved_root):
        raise HTTPException(status_code=404, detail="Image not found")
    if not target.exists() or not target.is_file():
        raise HTTPException(status_code=404, detail="Image not found")

    return FileResponse(path=target, headers={"Cache-Control": "no-cache"})


@router.get(REF_PREFIX + "/{browser_id}/{artifact_path:path}")
async def read_reference(browser_id: str, artifact_path: str, app: ReviewApp = ReviewAppDep) -> FileResponse:
    root = app.reference_dirs.get(browser_id)
    if root is None:
        raise HTTPException(status_code=404, detail="Unknown browser")
    return _serve(root, artifact_path)


@router.get(CURRENT_PREFIX + "/{artifact_path:path}")
async def read_current(artifact_path: str, app: ReviewApp = ReviewAppDep) -> FileResponse:
    return _serve(app.current_dir, artifact_path)


@router.get(DIFF_PREFIX + "/{artifact_path:path}")
async def read_diff(artifact_path: str, app: ReviewApp = ReviewAppDep) -> FileResponse:
    return _serve(app.diff_dir, artifact_path)
