import json
from datetime import datetime, timezone

import pytest

from portfolio_tracker.portfolio.codec import (
    EXPORT_VERSION,
    ImportValidationError,
    export_filename,
    export_portfolios,
    import_portfolios,
)
from portfolio_tracker.portfolio.models import Asset, Portfolio

NOW = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)


def _portfolio() -> Portfolio:
    asset = Asset(
        id="a1",
        symbol="BTC",
        name="Bitcoin",
        quantity=0.5,
        cost_basis=30000.0,
        purchase_date="2024-01-02",
        type="crypto",
    )
    return Portfolio(
        id="p1",
        name="Crypto",
        assets=(asset,),
        created_at="2024-01-01T00:00:00.000Z",
        updated_at="2024-01-02T00:00:00.000Z",
    )


def test_export_envelope_shape() -> None:
    text = export_portfolios([_portfolio()], now=NOW)
    data = json.loads(text)
    assert data["version"] == EXPORT_VERSION
    assert data["exportDate"] == "2024-06-01T12:30:00.000Z"
    assert data["portfolios"][0]["assets"][0]["costBasis"] == 30000.0
    assert data["portfolios"][0]["assets"][0]["type"] == "crypto"
    assert text.startswith('{\n  "version"')


def test_export_then_import_preserves_portfolios() -> None:
    original = _portfolio()
    assert import_portfolios(export_portfolios([original], now=NOW)) == [original]


def test_export_filename_uses_date() -> None:
    assert export_filename(NOW) == "portfolio-export-2024-06-01.json"


def test_import_rejects_invalid_json() -> None:
    with pytest.raises(ImportValidationError, match="Invalid JSON"):
        import_portfolios("{oops")


@pytest.mark.parametrize("payload", ['{"version": "1.0"}', '{"portfolios": {}}', "[]"])
def test_import_rejects_missing_portfolio_list(payload: str) -> None:
    with pytest.raises(ImportValidationError, match="Invalid portfolio data format"):
        import_portfolios(payload)


def test_import_rejects_whole_payload_when_one_portfolio_is_bad() -> None:
    good = _portfolio().to_dict()
    bad = {"id": "p2", "assets": []}
    with pytest.raises(ImportValidationError, match="Invalid portfolio structure"):
        import_portfolios(json.dumps({"version": "1.0", "portfolios": [good, bad]}))


def test_import_accepts_unknown_version() -> None:
    payload = json.dumps({"version": "9.9", "portfolios": [{"id": "p1", "name": "Old", "assets": []}]})
    [portfolio] = import_portfolios(payload)
    assert portfolio.name == "Old"
    assert portfolio.assets == ()
