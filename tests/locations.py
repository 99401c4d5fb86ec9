"""Reference locations used across tests."""

NAIROBI = {"address": "Nairobi CBD", "latitude": -1.2921, "longitude": 36.8219}
THIKA = {"address": "Thika Town", "latitude": -1.0333, "longitude": 37.0693}  # ~40 km from Nairobi
NAKURU = {"address": "Nakuru", "latitude": -0.3031, "longitude": 36.0800}  # ~140 km from Nairobi
MOMBASA = {"address": "Mombasa Port", "latitude": -4.0435, "longitude": 39.6682}
