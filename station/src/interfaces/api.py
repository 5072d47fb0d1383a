import asyncio
import json
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from domain.controller import StationController
from domain.errors import NotFound, StationError
from infra.config import StationConfig


class ReadingPayload(BaseModel):
    ph: float = Field(..., strict=True, allow_inf_nan=False, description="pH")
    turbidity: float = Field(..., strict=True, allow_inf_nan=False, description="Turbidity in NTU")
    tds: float = Field(..., strict=True, allow_inf_nan=False, description="Total dissolved solids in ppm")


class CommandPayload(BaseModel):
    command: str = Field(..., description="START_PUMP_A, START_PUMP_B, START_PUMP_C or STOP_ALL")


def _http_error(exc: StationError) -> HTTPException:
    status_code = 404 if isinstance(exc, NotFound) else 400
    return HTTPException(status_code=status_code, detail=exc.as_detail())


def create_app(config: StationConfig, controller: Optional[StationController] = None):
    controller = controller or StationController(config)

    app = FastAPI(title="Reuse Station")
    app.state.controller = controller
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_input(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
        return JSONResponse(
            status_code=400,
            content={
                "status": "ERROR",
                "error": "InvalidInput",
                "message": "Invalid or missing parameters",
                "fields": fields,
            },
        )

    @app.get("/")
    def root():
        return {"status": "ok", "service": config.service_id}

    @app.get("/health")
    def health():
        return {"status": "ok", "service": config.service_id}

    @app.get("/status")
    def status():
        return controller.get_status()

    # ---------------------------------------------------
    # SESSION
    # ---------------------------------------------------
    @app.post("/session/start")
    def session_start():
        batch_size = controller.start_session()
        return {"status": "STARTED", "batchSize": batch_size}

    @app.post("/session/reset")
    def session_reset():
        controller.reset_session()
        return {"status": "RESET"}

    @app.get("/session/status")
    def session_status():
        return controller.session_status()

    @app.get("/session/readings")
    def session_readings():
        return controller.session_readings()

    @app.post("/ingest")
    def ingest(payload: ReadingPayload):
        outcome = controller.ingest(payload.ph, payload.turbidity, payload.tds)
        body = {
            "status": "ACCEPTED" if outcome.accepted else "IGNORED",
            "collected": outcome.collected,
            "phase": outcome.phase.value,
        }
        if outcome.reason:
            body["reason"] = outcome.reason
        return body

    # ---------------------------------------------------
    # DECISION
    # ---------------------------------------------------
    @app.post("/analyze-water")
    def analyze_water():
        try:
            prediction = controller.analyze()
        except StationError as exc:
            raise _http_error(exc)
        return prediction.as_dict()

    @app.get("/prediction/latest")
    def prediction_latest():
        try:
            prediction = controller.latest_prediction()
        except StationError as exc:
            raise _http_error(exc)
        return prediction.as_dict()

    # ---------------------------------------------------
    # PUMP
    # ---------------------------------------------------
    @app.post("/pump/command")
    def pump_queue(payload: CommandPayload):
        try:
            queued = controller.queue_command(payload.command)
        except StationError as exc:
            raise _http_error(exc)
        return {"status": "QUEUED", **queued}

    @app.get("/pump/command")
    def pump_fetch():
        cmd = controller.fetch_command()
        return {"command": cmd.value if cmd else None}

    @app.post("/pump/ack")
    def pump_ack():
        result = controller.acknowledge_command()
        return {"status": "ACKNOWLEDGED", **result}

    # ---------------------------------------------------
    # OPERATOR UI
    # ---------------------------------------------------
    @app.post("/logs/clear")
    def clear_logs():
        controller.clear_logs()
        return {"ok": True}

    @app.get("/events/sse")
    async def sse():
        controller.attach_event_loop(asyncio.get_running_loop())
        queue: asyncio.Queue = asyncio.Queue()
        controller._sse_subscribers.append(queue)
        # push initial status
        await queue.put(json.dumps(controller.get_status()))

        async def event_generator():
            try:
                while True:
                    data = await queue.get()
                    yield f"data: {data}\n\n"
            finally:
                try:
                    controller._sse_subscribers.remove(queue)
                except ValueError:
                    pass

        return StreamingResponse(event_generator(), media_type="text/event-stream")

    return app
