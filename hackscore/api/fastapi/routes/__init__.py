from fastapi import APIRouter

from . import enqueue, health, jobs, queue, repo_worker, retry


def register_routes(app: APIRouter):
    app.include_router(health.router)
    app.include_router(repo_worker.router)
    app.include_router(retry.router)
    app.include_router(enqueue.router)
    app.include_router(jobs.router)
    app.include_router(queue.router)
