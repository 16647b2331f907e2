import logging

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from floodwatch.crud.ward_query import get_wards_nearby
from floodwatch.db import SessionLocal

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 5


async def ward_ws_handler(websocket: WebSocket):
    await websocket.accept()
    session = SessionLocal()
    try:
        while True:
            data = await websocket.receive_json()
            logger.info(f"Received WebSocket data: {data}")
            try:
                latitude, longitude = float(data["latitude"]), float(data["longitude"])
                radius_km = float(data.get("radius_km", DEFAULT_RADIUS_KM))
                # the nearby scan is a blocking query, keep it off the event loop
                wards = await run_in_threadpool(get_wards_nearby, session, latitude, longitude, radius_km)
                await websocket.send_json({"wards": wards})
            except (KeyError, TypeError, ValueError) as e:
                await websocket.send_json({"error": f"Invalid request: {e}"})
            except Exception as e:
                logger.exception("Ward lookup failed")
                session.rollback()
                await websocket.send_json({"error": str(e)})
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    finally:
        session.close()
