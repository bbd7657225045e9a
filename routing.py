# routing.py
import logging

import httpx
import polyline

import config
from simulation import haversine

logger = logging.getLogger(__name__)


async def _fetch_osrm(client, start_lat, start_lng, end_lat, end_lng):
    url = f"{config.OSRM_BASE_URL}/route/v1/driving/{start_lng},{start_lat};{end_lng},{end_lat}"
    resp = await client.get(url, params={"geometries": "geojson", "overview": "full"})
    resp.raise_for_status()
    data = resp.json()
    if data.get("code") != "Ok" or not data.get("routes"):
        logger.warning(f"⚠️ OSRM Status: {data.get('code')}")
        return None

    route = data["routes"][0]
    # GeoJSON is [lng, lat]
    coordinates = [(lat, lng) for lng, lat in route["geometry"]["coordinates"]]
    return {
        "polyline": polyline.encode(coordinates),
        "coordinates": coordinates,
        "distance_km": round(route["distance"] / 1000, 2),
        "duration_min": round(route["duration"] / 60, 1),
        "source": "osrm",
    }


async def _fetch_google(client, start_lat, start_lng, end_lat, end_lng):
    params = {
        "origin": f"{start_lat},{start_lng}",
        "destination": f"{end_lat},{end_lng}",
        "key": config.GOOGLE_MAPS_API_KEY,
        "mode": "driving",
    }
    resp = await client.get("https://maps.googleapis.com/maps/api/directions/json", params=params)
    data = resp.json()
    if data["status"] != "OK":
        logger.warning(f"⚠️ Google API Status: {data['status']}")
        return None

    route = data["routes"][0]
    total_meters = sum(leg["distance"]["value"] for leg in route["legs"])
    total_seconds = sum(leg["duration"]["value"] for leg in route["legs"])
    points = route["overview_polyline"]["points"]
    return {
        "polyline": points,
        "coordinates": polyline.decode(points),
        "distance_km": round(total_meters / 1000, 2),
        "duration_min": round(total_seconds / 60, 1),
        "source": "google",
    }


def straight_line_route(start_lat, start_lng, end_lat, end_lng):
    coordinates = [(start_lat, start_lng), (end_lat, end_lng)]
    dist_km = haversine(start_lat, start_lng, end_lat, end_lng)
    return {
        "polyline": polyline.encode(coordinates),
        "coordinates": coordinates,
        "distance_km": round(dist_km, 2),
        "duration_min": round((dist_km / config.FALLBACK_SPEED_KMH) * 60, 1),
        "source": "fallback",
    }


async def fetch_route(start_lat, start_lng, end_lat, end_lng, client=None):
    """Driving route between two points: Google Directions when a key is
    configured, OSRM otherwise, straight line if the service is unreachable."""
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS)
    try:
        if config.GOOGLE_MAPS_API_KEY:
            route = await _fetch_google(client, start_lat, start_lng, end_lat, end_lng)
        else:
            route = await _fetch_osrm(client, start_lat, start_lng, end_lat, end_lng)
        if route:
            return route
    except (httpx.HTTPError, KeyError, ValueError) as e:
        logger.warning(f"⚠️ Route service error: {e}")
    finally:
        if owns_client:
            await client.aclose()

    logger.warning("⚠️ Using straight-line route fallback")
    return straight_line_route(start_lat, start_lng, end_lat, end_lng)
