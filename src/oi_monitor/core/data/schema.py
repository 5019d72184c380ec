from typing import Dict, List, Optional

import polars as pl
from pydantic import BaseModel, ConfigDict, Field


class RawOptionRow(BaseModel):
    """One strike of an upstream option chain snapshot"""

    model_config = ConfigDict(extra="ignore")

    strike_price: float = Field(..., description="Strike price")
    calls_oi: float = Field(..., description="Call open interest")
    calls_change_oi: float = Field(..., description="Call change in OI")
    puts_oi: float = Field(..., description="Put open interest")
    puts_change_oi: float = Field(..., description="Put change in OI")
    index_close: float = Field(..., description="Underlying index level")


class RawChainSnapshot(BaseModel):
    symbol: str = Field(..., description="Index symbol")
    spot: float = Field(..., description="Index level at fetch time")
    rows: List[RawOptionRow]
    expiry_dates: List[str] = Field(default_factory=list)

    @classmethod
    def from_api_response(cls, symbol: str, payload: Dict) -> "RawChainSnapshot":
        """
        create RawChainSnapshot from the option chain api response

        Raises:
            ValueError: resultData or its rows are missing or empty
            ValidationError: a row misses a required field
        """
        if not isinstance(payload, dict):
            raise ValueError("payload is not a JSON object")

        result = payload.get("resultData")
        if not isinstance(result, dict):
            raise ValueError("resultData missing from payload")

        op_datas = result.get("opDatas")
        if not op_datas:
            raise ValueError("opDatas missing or empty")

        rows = [RawOptionRow(**item) for item in op_datas]
        expiry_dates = result.get("opExpiryDates") or []

        return cls(
            symbol=symbol,
            spot=rows[0].index_close,
            rows=rows,
            expiry_dates=[str(e) for e in expiry_dates],
        )


class Snapshot(BaseModel):
    """Immutable entry of a per-strike OI change series"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    spot: float
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="HH:MM trading tz")
    puts_coi: float = Field(..., alias="putsCoi")
    calls_coi: float = Field(..., alias="callsCoi")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, json_str: str) -> "Snapshot":
        return cls.model_validate_json(json_str)


class LiveStrike(BaseModel):
    """Display row of the live chain, OI figures in lakhs"""

    model_config = ConfigDict(populate_by_name=True)

    atm: Optional[float]
    strike_price: float = Field(..., alias="strikePrice")
    calls_oi: float = Field(..., alias="callsOi")
    calls_coi: float = Field(..., alias="callsCoi")
    puts_oi: float = Field(..., alias="putsOi")
    puts_coi: float = Field(..., alias="putsCoi")


class TotalsPoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spot: float
    pcr: Optional[float] = Field(
        ..., description="None when the call side change is zero"
    )
    oidiff: float
    time: str
    puts_coi: float = Field(..., alias="putsCoi")
    calls_coi: float = Field(..., alias="callsCoi")


class StrikePoint(BaseModel):
    oidiff: float
    time: str


CHAIN_SCHEMA = {
    "strike_price": pl.Float64,
    "calls_oi": pl.Float64,
    "calls_change_oi": pl.Float64,
    "puts_oi": pl.Float64,
    "puts_change_oi": pl.Float64,
    "index_close": pl.Float64,
}


def validate_chain_schema(df: pl.DataFrame) -> tuple[bool, str]:
    """
    Fast DataFrame schema validation of an option chain frame
    """
    missing = set(CHAIN_SCHEMA.keys()) - set(df.columns)
    if missing:
        return False, f"Missing columns: {sorted(missing)}"

    for col, expected_type in CHAIN_SCHEMA.items():
        if df[col].dtype != expected_type:
            return (
                False,
                f"Column '{col}' type mismatch: {df[col].dtype} vs {expected_type}",
            )

    null_counts = df.null_count()
    null_cols = [col for col in CHAIN_SCHEMA.keys() if null_counts[col][0] > 0]
    if null_cols:
        return False, f"Null values in columns: {null_cols}"

    return True, ""


