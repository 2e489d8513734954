"""FastAPI application exposing block queries and edits over flow snapshots."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flowgraph.config import CORS_ORIGINS, configure_logging
from server.flow_routes import router as flow_router

configure_logging()

app = FastAPI(
    title="Flowgraph API",
    description="Block structure queries and structural edits for workflow graphs",
    version="0.1.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# include routes
app.include_router(flow_router, prefix="/api")


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "0.1.0",
        "endpoints": {
            "merge_node": "/api/flows/merge-node",
            "block": "/api/flows/block",
            "block_starter": "/api/flows/block-starter",
            "delete_node": "/api/flows/delete-node",
            "swap_node": "/api/flows/swap-node",
            "insert_step": "/api/flows/insert-step",
            "parallel_branches": "/api/flows/parallel-branches",
            "replace_placeholder": "/api/flows/replace-placeholder",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
