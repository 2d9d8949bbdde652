"""Direct contract operations: decay processing and faucet statistics."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from cattv.api.dependencies import get_chain_mirror, get_current_user
from cattv.api.schemas import DecayView, RpcRequest, RpcResponse, TriggerDecayData
from cattv.services.blockchain.chain_mirror import ChainMirror
from cattv.services.exceptions import ChainMirrorUnavailable, Internal, ServiceError

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["contract"])


def _require_mirror(chain_mirror: ChainMirror | None) -> ChainMirror:
    if chain_mirror is None:
        raise ChainMirrorUnavailable("Contract not configured")
    return chain_mirror


@router.post("/triggerDecay", response_model=RpcResponse[DecayView])
async def trigger_decay(
    body: Optional[RpcRequest[TriggerDecayData]] = None,
    user_id: str = Depends(get_current_user),
    chain_mirror: ChainMirror | None = Depends(get_chain_mirror),
):
    """Move decayed bowl balances into the Care Fund for up to ``maxCats`` cats."""
    mirror = _require_mirror(chain_mirror)
    max_cats = body.data.max_cats if body else 50
    try:
        tx_hash = await mirror.process_decay_all(max_cats)
    except ServiceError as e:
        logger.error("contract.decay_failed", user_id=user_id, error=str(e))
        raise Internal(str(e))

    logger.info("contract.decay_processed", user_id=user_id, max_cats=max_cats, tx_hash=tx_hash)
    return RpcResponse(result=DecayView(tx_hash=tx_hash))


@router.post("/getContractStats", response_model=RpcResponse[dict[str, str]])
async def get_contract_stats(chain_mirror: ChainMirror | None = Depends(get_chain_mirror)):
    mirror = _require_mirror(chain_mirror)
    try:
        stats = await mirror.get_contract_stats()
    except ServiceError as e:
        raise Internal(str(e))
    return RpcResponse(result=stats)
