from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

import config
from errors import ConcurrencyConflictError, DuplicateRecordError, RecordNotFoundError
from live_agent_system import ChatQueueService
from models import (
    Agent, AgentCreateRequest, AgentList, ChatSession,
    QueueChatRequest, QueueChatResponse
)
from observability import setup_observability, shutdown_observability
from store import InMemoryChatStore
from sweeps import SweepScheduler

config.configure_logging()

origins = [
    "http://localhost",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
    "http://localhost:8001",
    "http://127.0.0.1:8001",
]


def create_app(
    store: Optional[InMemoryChatStore] = None,
    enable_sweeps: bool = config.SWEEPS_ENABLED,
    enable_observability: bool = config.OTEL_ENABLED,
) -> FastAPI:
    """Build the API around a chat store (in-memory unless one is given)."""
    store = store if store is not None else InMemoryChatStore()
    service = ChatQueueService(store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start observability and the periodic sweeps for the app's lifetime."""
        if enable_observability:
            setup_observability()

        sweeps = SweepScheduler(
            service,
            assign_interval_seconds=config.ASSIGN_INTERVAL_SECONDS,
            monitor_interval_seconds=config.MONITOR_INTERVAL_SECONDS,
        )
        app.state.sweeps = sweeps
        if enable_sweeps:
            await sweeps.start()

        try:
            yield
        finally:
            if sweeps.running:
                await sweeps.stop()
            if enable_observability:
                shutdown_observability()

    app = FastAPI(
        title="Live Chat Queue API",
        description="Admission control, agent assignment and liveness for the live chat support queue.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConcurrencyConflictError)
    async def conflict_handler(request: Request, exc: ConcurrencyConflictError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    # ========================================================================
    # CUSTOMER ENDPOINTS
    # ========================================================================

    @app.post("/chat", response_model=QueueChatResponse)
    async def queue_chat(request_body: Optional[QueueChatRequest] = None):
        """
        Ask to join the support queue.
        Office hours come from the request when given, otherwise from config.
        """
        is_office_hours = request_body.is_office_hours if request_body else None
        if is_office_hours is None:
            is_office_hours = config.is_office_hours()

        session = ChatSession()
        accepted = await service.queue_session(session, is_office_hours)
        if not accepted:
            return QueueChatResponse(accepted=False)
        return QueueChatResponse(accepted=True, session_id=session.session_id, status=session.status)

    @app.get("/chat/{session_id}", response_model=ChatSession)
    async def get_chat(session_id: str):
        return await service.get_session(session_id)

    @app.post("/chat/{session_id}/poll", response_model=ChatSession)
    async def poll_chat(session_id: str):
        """Heartbeat from the customer's client while waiting."""
        return await service.record_poll(session_id)

    @app.post("/chat/{session_id}/close", response_model=ChatSession)
    async def close_chat(session_id: str):
        return await service.close_session(session_id)

    # ========================================================================
    # AGENT ENDPOINTS
    # ========================================================================

    @app.post("/api/agents", response_model=Agent, status_code=201)
    async def register_agent(request_body: AgentCreateRequest):
        """Register an agent coming on shift."""
        agent = Agent(**request_body.model_dump())
        try:
            await store.add_agent(agent)
        except DuplicateRecordError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return agent

    @app.get("/api/agents/shift/{shift_number}", response_model=AgentList)
    async def agents_on_shift(shift_number: int):
        return AgentList(agents=await service.agents_on_shift(shift_number))

    @app.get("/api/agents/{agent_id}/active-chats")
    async def active_chats(agent_id: str):
        agent = await store.fetch_agent_by_id(agent_id)
        if agent is None:
            raise HTTPException(status_code=404, detail="Agent not found")
        return {"agent_id": agent_id, "active_chats": await service.count_active_sessions(agent_id)}

    # ========================================================================
    # SWEEPS (manual triggers)
    # ========================================================================

    @app.post("/api/sweeps/assign")
    async def run_assign_sweep():
        await service.assign_pending()
        return {"success": True}

    @app.post("/api/sweeps/monitor")
    async def run_monitor_sweep():
        await service.monitor_polling()
        return {"success": True}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = 8001
    uvicorn.run("main:app", host="127.0.0.1", port=port, reload=True)
