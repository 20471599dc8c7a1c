from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

from shotreview.routes import api, artifacts, events
from shotreview.services.review_app import ReviewApp, ReviewAppDep
from shotreview.templating import templates

app = FastAPI(title="Screenshot Review")
app.include_router(api.router)
app.include_router(events.router)
app.include_router(artifacts.router)


@app.get("/", response_class=HTMLResponse)
async def root(request: Request, review: ReviewApp = ReviewAppDep) -> HTMLResponse:
    """Render the viewer with the loaded tests; live results arrive over /events."""
    context = {
        "suites": review.get_tests(),
        "state": review.state.value,
    }
    return templates.TemplateResponse(request, "index.html", context)
