"""Row builders shared by the test modules."""


def make_row(lat, lon, time="2025-07-31T00:00:00Z", **fields):
    """Build one raw row with provenance tags."""
    row = {
        "lat": lat,
        "lon": lon,
        "time": time,
        "model": "NGOFS2",
        "area": "USM",
        "_source_file": "usm_ngofs2_0731.nc",
        "_loaded_at": "2025-07-31T06:00:00Z",
    }
    row.update(fields)
    return row
