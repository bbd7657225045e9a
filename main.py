# main.py
import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

import config
import database as db
import logging_config
import routing
import stations
from errors import SimulatorError, UpstreamError
from live_mirror import default_mirror
from notifications import default_notifier
from simulation import VehicleSimulator, check_navigation_request

logger = logging.getLogger(__name__)


# --- 1. DATA MODELS ---
class EmailRequest(BaseModel):
    email: Optional[str] = None


class StartRequest(EmailRequest):
    initialBattery: Optional[float] = None
    drainRate: Optional[float] = None


class LocationRequest(EmailRequest):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class BatteryRequest(EmailRequest):
    batteryLevel: Optional[float] = None


class DrainRateRequest(EmailRequest):
    drainRate: Optional[float] = None


class NavigationRequest(EmailRequest):
    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    end_lat: Optional[float] = None
    end_lng: Optional[float] = None


class TokenRequest(EmailRequest):
    fcmToken: Optional[str] = None


class SlotUpdateRequest(BaseModel):
    slotIndex: Optional[int] = None
    isAvailable: Optional[bool] = None


class StationSlots(BaseModel):
    id: str
    slots: List[dict]


class BulkSlotUpdateRequest(BaseModel):
    updates: List[StationSlots] = []


# --- 2. ERROR HANDLERS ---
async def simulator_error_handler(request: Request, exc: SimulatorError):
    body = {"message": str(exc)}
    if isinstance(exc, UpstreamError) and exc.upstream:
        body["error"] = exc.upstream
    return JSONResponse(status_code=exc.status_code, content=body)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": "Invalid request.", "error": str(exc.errors())})


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"❌ Database error on {request.url.path}: {exc}")
    return await simulator_error_handler(request, UpstreamError("Database request failed.", upstream=str(exc)))


def get_simulator(request: Request) -> VehicleSimulator:
    return request.app.state.simulator


def get_engine(request: Request):
    return request.app.state.engine


# --- 3. APP FACTORY ---
def create_app(engine=None, mirror=None, notifier=None, clock=time.time, route_fetcher=routing.fetch_route, seed=None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.engine = engine or db.make_engine()
        db.init_db(app.state.engine, seed=config.SEED_DEMO_DATA if seed is None else seed)
        app.state.mirror = mirror or default_mirror()
        app.state.simulator = VehicleSimulator(
            app.state.engine,
            app.state.mirror,
            notifier or default_notifier(),
            clock,
        )
        logger.info("🚀 EV simulator API ready")
        yield
        if engine is None:
            app.state.engine.dispose()

    app = FastAPI(title="EV Charging Network Simulator", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SimulatorError, simulator_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    # --- vehicle run ---
    @app.post("/api/start")
    def start(req: StartRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.start(req.email, req.initialBattery, req.drainRate)

    @app.post("/api/stop")
    def stop(req: EmailRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.stop(req.email)

    @app.post("/api/reset")
    def reset(req: EmailRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.reset(req.email)

    @app.get("/api/status")
    def status(background_tasks: BackgroundTasks, email: Optional[str] = None,
               sim: VehicleSimulator = Depends(get_simulator)):
        return sim.status(email, schedule=background_tasks.add_task)

    @app.post("/api/update-location")
    def update_location(req: LocationRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.update_location(req.email, req.latitude, req.longitude)

    @app.post("/api/update-battery")
    def update_battery(req: BatteryRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.update_battery(req.email, req.batteryLevel)

    @app.post("/api/update-drain-rate")
    def update_drain_rate(req: DrainRateRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.update_drain_rate(req.email, req.drainRate)

    # --- navigation ---
    @app.post("/api/navigation")
    async def request_navigation(req: NavigationRequest, sim: VehicleSimulator = Depends(get_simulator)):
        email, start_lat, start_lng, end_lat, end_lng = check_navigation_request(
            req.email, req.start_lat, req.start_lng, req.end_lat, req.end_lng,
        )
        route = await route_fetcher(start_lat, start_lng, end_lat, end_lng)
        target = await run_in_threadpool(
            sim.set_navigation_target,
            email, start_lat, start_lng, end_lat, end_lng, route,
        )
        return {**target, "route": route}

    @app.get("/api/navigation-status")
    def navigation_status(email: Optional[str] = None, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.navigation_status(email)

    @app.post("/api/end-navigation")
    def end_navigation(req: EmailRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.end_navigation(req.email)

    # --- users ---
    @app.get("/api/users")
    def list_users(sim: VehicleSimulator = Depends(get_simulator)):
        return sim.list_users()

    @app.post("/api/users/register-token")
    def register_token(req: TokenRequest, sim: VehicleSimulator = Depends(get_simulator)):
        return sim.register_token(req.email, req.fcmToken)

    # --- stations ---
    @app.get("/api/stations")
    def list_stations(engine=Depends(get_engine)):
        return stations.list_stations(engine)

    @app.post("/api/stations/bulk-slot-update")
    def bulk_slot_update(req: BulkSlotUpdateRequest, engine=Depends(get_engine)):
        return stations.bulk_update_slots(engine, [u.model_dump() for u in req.updates])

    @app.post("/api/stations/{station_id}/slot-update")
    def slot_update(station_id: str, req: SlotUpdateRequest, engine=Depends(get_engine)):
        return stations.update_slot(engine, station_id, req.slotIndex, req.isAvailable)

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    return app


logging_config.configure(config.LOG_LEVEL)
app = create_app()

if __name__ == "__main__":
    import uvicorn
    logger.info(f"🚀 EV Simulator Running on Port {config.PORT}...")
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
