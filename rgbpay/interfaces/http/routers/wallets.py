"""RGB wallet endpoints."""

from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from rgbpay.core.container import ApplicationContainer
from rgbpay.domain.wallets import (
    NoColorableUtxosError,
    NoLocalSignerError,
    Wallet,
    WalletKeyMismatchError,
    WalletNotFoundError,
    WalletService,
)
from rgbpay.infrastructure.node import RgbNodeError
from rgbpay.interfaces.http.deps import get_container, get_wallet_service
from rgbpay.schemas import (
    AssetListResponse,
    InvoiceCreate,
    InvoiceResponse,
    SendRequest,
    SendResponse,
    SuccessResponse,
    TransferListResponse,
    UtxoCreateRequest,
    UtxoCreateResponse,
    WalletBalanceResponse,
    WalletCreate,
    WalletResponse,
)

router = APIRouter()


@contextmanager
def _domain_errors() -> Iterator[None]:
    try:
        yield
    except WalletNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (NoLocalSignerError, NoColorableUtxosError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (RgbNodeError, WalletKeyMismatchError) as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc


def _to_schema(wallet: Wallet, container: ApplicationContainer) -> WalletResponse:
    response = WalletResponse.model_validate(wallet)
    response.has_signer = container.signers.can_handle(wallet.id)
    return response


@router.post("/", response_model=WalletResponse, status_code=status.HTTP_201_CREATED, summary="Create a wallet")
async def create_wallet(
    payload: WalletCreate,
    service: WalletService = Depends(get_wallet_service),
    container: ApplicationContainer = Depends(get_container),
):
    if await service.get_wallet_for_store(payload.store_id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="store already has an RGB wallet")
    with _domain_errors():
        wallet = await service.create_wallet(payload.store_id, payload.name)
    return _to_schema(wallet, container)


@router.get("/{wallet_id}", response_model=WalletResponse, summary="Get a wallet")
async def get_wallet(
    wallet_id: str,
    service: WalletService = Depends(get_wallet_service),
    container: ApplicationContainer = Depends(get_container),
):
    wallet = await service.get_wallet(wallet_id)
    if wallet is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="wallet not found")
    return _to_schema(wallet, container)


@router.get("/{wallet_id}/balance", response_model=WalletBalanceResponse, summary="BTC and asset balances")
async def get_balance(
    wallet_id: str,
    asset_id: Optional[str] = None,
    service: WalletService = Depends(get_wallet_service),
):
    with _domain_errors():
        btc = await service.get_btc_balance(wallet_id)
        colorable = await service.get_colorable_utxo_count(wallet_id)
        asset = await service.get_asset_balance(wallet_id, asset_id) if asset_id else None
    return WalletBalanceResponse(wallet_id=wallet_id, btc=btc, colorable_utxos=colorable, asset=asset)


@router.get("/{wallet_id}/assets", response_model=AssetListResponse, summary="List wallet assets")
async def list_assets(wallet_id: str, service: WalletService = Depends(get_wallet_service)):
    with _domain_errors():
        assets = await service.list_assets(wallet_id)
    return AssetListResponse(wallet_id=wallet_id, assets=assets)


@router.post("/{wallet_id}/assets/import", response_model=AssetListResponse, summary="Import node assets")
async def import_assets(wallet_id: str, service: WalletService = Depends(get_wallet_service)):
    with _domain_errors():
        assets = await service.import_assets(wallet_id)
    return AssetListResponse(wallet_id=wallet_id, assets=assets)


@router.post("/{wallet_id}/utxos", response_model=UtxoCreateResponse, summary="Create colorable UTXOs")
async def create_utxos(
    wallet_id: str,
    payload: UtxoCreateRequest,
    service: WalletService = Depends(get_wallet_service),
):
    with _domain_errors():
        created = await service.create_colorable_utxos(wallet_id, payload.count, payload.size)
    return UtxoCreateResponse(wallet_id=wallet_id, created=created)


@router.post(
    "/{wallet_id}/invoices",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an RGB invoice",
)
async def create_invoice(
    wallet_id: str,
    payload: InvoiceCreate,
    service: WalletService = Depends(get_wallet_service),
):
    expiration = timedelta(seconds=payload.expiration_seconds) if payload.expiration_seconds else None
    with _domain_errors():
        await service.ensure_colorable_utxos(wallet_id)
        invoice = await service.create_invoice(
            wallet_id,
            asset_id=payload.asset_id,
            amount=payload.amount,
            expiration=expiration,
            external_invoice_id=payload.external_invoice_id,
            witness=payload.witness,
        )
    return InvoiceResponse.model_validate(invoice)


@router.get("/{wallet_id}/transfers", response_model=TransferListResponse, summary="List transfers")
async def list_transfers(
    wallet_id: str,
    asset_id: Optional[str] = None,
    service: WalletService = Depends(get_wallet_service),
):
    with _domain_errors():
        transfers = await service.get_transfers(wallet_id, asset_id)
    return TransferListResponse(wallet_id=wallet_id, asset_id=asset_id, transfers=transfers)


@router.post("/{wallet_id}/refresh", response_model=SuccessResponse, summary="Resync with the node")
async def refresh_wallet(wallet_id: str, service: WalletService = Depends(get_wallet_service)):
    with _domain_errors():
        refreshed = await service.refresh_wallet(wallet_id)
    if not refreshed:
        return SuccessResponse(success=False, message="refresh failed")
    return SuccessResponse()


@router.post("/{wallet_id}/send", response_model=SendResponse, summary="Send an asset or BTC")
async def send(
    wallet_id: str,
    payload: SendRequest,
    service: WalletService = Depends(get_wallet_service),
):
    if payload.kind == "btc":
        if not payload.address:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="address is required")
        with _domain_errors():
            txid = await service.send_btc(wallet_id, payload.address, payload.amount, payload.fee_rate or 2)
        return SendResponse(wallet_id=wallet_id, txid=txid)

    if not payload.invoice or not payload.asset_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="invoice and asset_id are required"
        )
    with _domain_errors():
        result = await service.send_asset(
            wallet_id, payload.invoice, payload.asset_id, payload.amount, payload.fee_rate or 5
        )
    return SendResponse(wallet_id=wallet_id, txid=result.txid, batch_transfer_idx=result.batch_transfer_idx)
