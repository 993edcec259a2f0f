"""HTTP front door: accept GitHub webhooks and hand them to the job queue.

The webhook handler only validates and enqueues; it answers as soon as the
job is stored and never waits for (or reports on) the reconciliation itself.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from prexplain_core.models import ChangeEvent
from prexplain_core.reconciler import process_event
from prexplain_core.runtime import Runtime, build_runtime
from prexplain_server.queue import JobQueue, build_store

logger = logging.getLogger(__name__)

ACK_MESSAGE = "You are running an AI Bot PR Code Explainer"


def build_queue(config: dict, runtime: Runtime | None = None) -> JobQueue:
    runtime = runtime or build_runtime(config)
    return JobQueue(
        build_store(config),
        partial(process_event, runtime=runtime),
        max_attempts=int(config.get("max_attempts", 1)),
    )


def create_app(config: dict, runtime: Runtime | None = None, queue: JobQueue | None = None) -> FastAPI:
    queue = queue or build_queue(config, runtime=runtime)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        queue.start()
        try:
            yield
        finally:
            await queue.stop()
            queue.close()

    app = FastAPI(title="prexplain", lifespan=lifespan)
    app.state.queue = queue

    @app.get("/", response_class=PlainTextResponse)
    async def index() -> str:
        return ACK_MESSAGE

    @app.post("/webhook")
    async def webhook(request: Request, x_github_event: str | None = Header(default=None)):
        try:
            payload = await request.json()
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Request body is not valid JSON."})

        if x_github_event == "ping":
            return {"status": "pong"}

        try:
            event = ChangeEvent.from_webhook(x_github_event, payload)
        except ValueError as e:
            logger.warning("Rejected malformed %s delivery: %s", x_github_event, e)
            return JSONResponse(status_code=400, content={"error": str(e)})

        if event is None:
            action = payload.get("action") if isinstance(payload, dict) else None
            logger.debug("Ignoring %s/%s delivery", x_github_event, action)
            return JSONResponse(
                status_code=400,
                content={"error": "Not an opened or synchronize pull_request event.", "event": x_github_event},
            )

        try:
            job = queue.enqueue(event)
        except Exception:
            logger.exception("Could not enqueue %s#%d", event.full_name, event.pr_number)
            return JSONResponse(status_code=500, content={"error": "Internal error while queueing the event."})

        return {"status": "queued", "job_id": job.id}

    return app
