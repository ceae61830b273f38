"""Postal code (CEP) lookup proxied to ViaCEP."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..services.cep_client import CepLookupError, InvalidCepError, ViaCepClient, cep_client

router = APIRouter(prefix="/cep", tags=["cep"])


def get_cep_client() -> ViaCepClient:
    return cep_client


@router.get("/{cep}")
def lookup_cep(cep: str, client: ViaCepClient = Depends(get_cep_client)):
    try:
        return client.lookup(cep)
    except InvalidCepError as exc:
        return JSONResponse(status_code=400, content={"erro": True, "message": str(exc)})
    except CepLookupError as exc:
        return JSONResponse(status_code=500, content={"erro": True, "message": str(exc)})
