"""
Options API Endpoints

Option chain summaries over caller-supplied quotes.
"""

from fastapi import APIRouter, HTTPException

from chartlab.schemas.options import OptionChainRequest, OptionsChainData
from chartlab.services.options import summarize_chain

router = APIRouter()


@router.post("/chain/summary", response_model=OptionsChainData)
async def chain_summary(request: OptionChainRequest):
    """
    ATM strike, put-call ratio and max pain for an option chain.

    Strikes are windowed to +/- `strike_window` around ATM; legs without
    an LTP are priced at intrinsic value and flagged `theoretical`.
    """
    try:
        return summarize_chain(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
