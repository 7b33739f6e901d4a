"""EtherFund — Chain Status Routes."""

from fastapi import APIRouter, Depends

from etherfund.dependencies import Services, get_services

router = APIRouter(prefix="/chain", tags=["Chain"])


@router.get("/status")
async def chain_status(services: Services = Depends(get_services)):
    """Provider connectivity, head block, gas price and chain id."""
    status = await services.chain.chain_status()
    return {"status": "success", **status}
