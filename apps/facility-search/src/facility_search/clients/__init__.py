"""Upstream adapters: geocoding, spatial query, IP and device geolocation."""
