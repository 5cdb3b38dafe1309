"""Jinja filters for Indonesian formatting of prices and payment times."""
from datetime import timedelta, timezone

# Asia/Jakarta has no daylight saving time
WIB = timezone(timedelta(hours=7), "WIB")

BULAN = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def rupiah(value):
    """Format a price the way id-ID does: ``1500000`` -> ``1.500.000``."""
    try:
        amount = int(value or 0)
    except (TypeError, ValueError):
        amount = 0
    return f"{amount:,}".replace(",", ".")


def _to_wib(value):
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(WIB)


def tanggal(value):
    local = _to_wib(value)
    return f"{local.day:02d} {BULAN[local.month - 1]} {local.year}"


def jam(value):
    local = _to_wib(value)
    return local.strftime("%H.%M.%S")


def register_filters(app):
    app.add_template_filter(rupiah, "rupiah")
    app.add_template_filter(tanggal, "tanggal")
    app.add_template_filter(jam, "jam")
