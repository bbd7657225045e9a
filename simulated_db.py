# simulated_db.py
# Demo records inserted into an empty database at startup (SEED_DEMO_DATA).


def _slots(*specs):
    return [
        {"chargerType": charger_type, "powerKw": power_kw, "isAvailable": True}
        for charger_type, power_kw in specs
    ]


STATIONS_DB = {
    # ==========================================
    # CENTRAL BENGALURU
    # ==========================================
    "st_001": {
        "id": "st_001",
        "name": "MG Road Metro Charging Hub",
        "address": "MG Road, Bengaluru 560001",
        "latitude": 12.9755,
        "longitude": 77.6067,
        "slots": _slots(("CCS2", 60.0), ("CCS2", 60.0), ("Type 2", 22.0)),
    },
    "st_002": {
        "id": "st_002",
        "name": "Cubbon Park EV Point",
        "address": "Kasturba Road, Bengaluru 560001",
        "latitude": 12.9763,
        "longitude": 77.5929,
        "slots": _slots(("Type 2", 7.4), ("Type 2", 7.4)),
    },
    "st_003": {
        "id": "st_003",
        "name": "UB City Premium Chargers",
        "address": "Vittal Mallya Road, Bengaluru 560001",
        "latitude": 12.9716,
        "longitude": 77.5951,
        "slots": _slots(("CCS2", 120.0), ("CHAdeMO", 50.0)),
    },

    # ==========================================
    # EAST / WHITEFIELD
    # ==========================================
    "st_004": {
        "id": "st_004",
        "name": "Indiranagar 100ft Road",
        "address": "100 Feet Road, Indiranagar, Bengaluru 560038",
        "latitude": 12.9719,
        "longitude": 77.6412,
        "slots": _slots(("CCS2", 30.0), ("Type 2", 22.0)),
    },
    "st_005": {
        "id": "st_005",
        "name": "Phoenix Marketcity Whitefield",
        "address": "Whitefield Main Road, Bengaluru 560048",
        "latitude": 12.9976,
        "longitude": 77.6963,
        "slots": _slots(("CCS2", 150.0), ("CCS2", 150.0), ("CHAdeMO", 50.0), ("Type 2", 22.0)),
    },

    # ==========================================
    # SOUTH / ELECTRONIC CITY
    # ==========================================
    "st_006": {
        "id": "st_006",
        "name": "Koramangala Forum Mall",
        "address": "Hosur Road, Koramangala, Bengaluru 560029",
        "latitude": 12.9346,
        "longitude": 77.6113,
        "slots": _slots(("CCS2", 60.0), ("Type 2", 11.0)),
    },
    "st_007": {
        "id": "st_007",
        "name": "Electronic City Phase 1",
        "address": "Hosur Road, Electronic City, Bengaluru 560100",
        "latitude": 12.8452,
        "longitude": 77.6602,
        "slots": _slots(("CCS2", 60.0), ("CCS2", 60.0), ("CCS2", 60.0)),
    },

    # ==========================================
    # NORTH / AIRPORT ROUTE
    # ==========================================
    "st_008": {
        "id": "st_008",
        "name": "Hebbal Flyover Fast Charge",
        "address": "Bellary Road, Hebbal, Bengaluru 560024",
        "latitude": 13.0358,
        "longitude": 77.5970,
        "slots": _slots(("CCS2", 120.0), ("Type 2", 22.0)),
    },
    "st_009": {
        "id": "st_009",
        "name": "Kempegowda Airport P4",
        "address": "KIAL Road, Devanahalli, Bengaluru 560300",
        "latitude": 13.1986,
        "longitude": 77.7066,
        "slots": _slots(("CCS2", 180.0), ("CCS2", 180.0), ("CHAdeMO", 50.0)),
    },
}

USERS_DB = {
    "driver1@example.com": {"email": "driver1@example.com", "fcmToken": None},
    "driver2@example.com": {"email": "driver2@example.com", "fcmToken": None},
    "fleet.ops@example.com": {"email": "fleet.ops@example.com", "fcmToken": None},
}
