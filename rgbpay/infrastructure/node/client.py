"""Async HTTP client for the remote RGB node.

Every operation is a POST to ``/wallet/<op>``. Wallet-scoped operations carry
the wallet's public descriptor in three headers; key generation and invoice
decoding happen before a wallet exists and send no credentials.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from .exceptions import RgbNodeError
from .models import (
    AssetBalance,
    BtcBalance,
    DecodedInvoice,
    GenerateKeysResponse,
    InvoiceResponse,
    ListAssetsResponse,
    RegisterResponse,
    RgbAsset,
    SendBtcEndResponse,
    SendEndResponse,
    Transfer,
    UnspentOutput,
    WalletCredentials,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSFERS = TypeAdapter(list[Transfer])
_UNSPENTS = TypeAdapter(list[UnspentOutput])


def _body(**fields: Any) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


class RgbNodeClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RgbNodeClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- wallet lifecycle -------------------------------------------------

    async def generate_keys(self) -> GenerateKeysResponse:
        return await self._post_model("/wallet/generate_keys", GenerateKeysResponse)

    async def register(self, creds: WalletCredentials) -> RegisterResponse:
        return await self._post_model("/wallet/register", RegisterResponse, creds)

    async def get_address(self, creds: WalletCredentials) -> str:
        return await self._post_raw("/wallet/address", creds)

    async def get_btc_balance(self, creds: WalletCredentials) -> BtcBalance:
        return await self._post_model("/wallet/btcbalance", BtcBalance, creds)

    async def refresh(self, creds: WalletCredentials) -> None:
        await self._post("/wallet/refresh", creds)

    async def sync(self, creds: WalletCredentials) -> None:
        await self._post("/wallet/sync", creds)

    # -- utxos ------------------------------------------------------------

    async def list_unspents(self, creds: WalletCredentials) -> list[UnspentOutput]:
        data = await self._post_json("/wallet/listunspents", creds)
        return self._validate("/wallet/listunspents", _UNSPENTS, data)

    async def create_utxos_begin(
        self, creds: WalletCredentials, num: int = 5, size: int = 10000, fee_rate: int = 2
    ) -> str:
        return await self._post_raw(
            "/wallet/createutxosbegin",
            creds,
            {"up_to": True, "num": num, "size": size, "fee_rate": fee_rate},
        )

    async def create_utxos_end(self, creds: WalletCredentials, signed_psbt: str) -> str:
        return await self._post_raw("/wallet/createutxosend", creds, {"signed_psbt": signed_psbt.strip('"')})

    # -- assets -----------------------------------------------------------

    async def list_assets(self, creds: WalletCredentials) -> list[RgbAsset]:
        response = await self._post_model("/wallet/listassets", ListAssetsResponse, creds)
        return response.nia

    async def get_asset_balance(self, creds: WalletCredentials, asset_id: str) -> AssetBalance:
        return await self._post_model("/wallet/assetbalance", AssetBalance, creds, {"asset_id": asset_id})

    # -- invoices and transfers -------------------------------------------

    async def blind_receive(
        self,
        creds: WalletCredentials,
        asset_id: Optional[str] = None,
        amount: Optional[int] = None,
        expiration_timestamp: Optional[int] = None,
    ) -> InvoiceResponse:
        body = _body(asset_id=asset_id, amount=amount, expiration_timestamp=expiration_timestamp)
        return await self._post_model("/wallet/blindreceive", InvoiceResponse, creds, body)

    async def witness_receive(
        self,
        creds: WalletCredentials,
        asset_id: Optional[str] = None,
        amount: Optional[int] = None,
        expiration_timestamp: Optional[int] = None,
    ) -> InvoiceResponse:
        body = _body(asset_id=asset_id, amount=amount, expiration_timestamp=expiration_timestamp)
        return await self._post_model("/wallet/witnessreceive", InvoiceResponse, creds, body)

    async def decode_invoice(self, invoice: str) -> DecodedInvoice:
        return await self._post_model("/wallet/decodergbinvoice", DecodedInvoice, None, {"invoice": invoice})

    async def list_transfers(self, creds: WalletCredentials, asset_id: Optional[str] = None) -> list[Transfer]:
        body = {"asset_id": asset_id} if asset_id is not None else None
        data = await self._post_json("/wallet/listtransfers", creds, body)
        return self._validate("/wallet/listtransfers", _TRANSFERS, data)

    async def fail_transfers(self, creds: WalletCredentials, no_asset_only: bool = True) -> None:
        await self._post("/wallet/failtransfers", creds, {"no_asset_only": no_asset_only})

    # -- sending ----------------------------------------------------------

    async def send_begin(
        self, creds: WalletCredentials, invoice: str, asset_id: str, amount: int, fee_rate: int = 5
    ) -> str:
        return await self._post_raw(
            "/wallet/sendbegin",
            creds,
            {"invoice": invoice, "asset_id": asset_id, "amount": amount, "fee_rate": fee_rate},
        )

    async def send_end(self, creds: WalletCredentials, signed_psbt: str) -> SendEndResponse:
        return await self._post_model("/wallet/sendend", SendEndResponse, creds, {"signed_psbt": signed_psbt})

    async def send_btc_begin(self, creds: WalletCredentials, address: str, amount: int, fee_rate: int = 2) -> str:
        return await self._post_raw(
            "/wallet/sendbtcbegin",
            creds,
            {"address": address, "amount": amount, "fee_rate": fee_rate},
        )

    async def send_btc_end(self, creds: WalletCredentials, signed_psbt: str) -> str:
        response = await self._post_model("/wallet/sendbtcend", SendBtcEndResponse, creds, {"signed_psbt": signed_psbt})
        if not response.txid:
            raise RgbNodeError("/wallet/sendbtcend", "did not return txid")
        return response.txid

    # -- transport --------------------------------------------------------

    async def _post(
        self, path: str, creds: WalletCredentials | None = None, body: dict[str, Any] | None = None
    ) -> httpx.Response:
        headers = creds.headers() if creds is not None else None
        try:
            response = await self._http.post(path.lstrip("/"), json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise RgbNodeError(path, str(exc)) from exc
        if response.is_success:
            return response
        logger.error("RGB node %s failed (%s): %s", path, response.status_code, response.text)
        raise RgbNodeError(path, response.text, response.status_code)

    async def _post_json(
        self, path: str, creds: WalletCredentials | None = None, body: dict[str, Any] | None = None
    ) -> Any:
        response = await self._post(path, creds, body)
        try:
            data = response.json()
        except ValueError as exc:
            raise RgbNodeError(path, "invalid JSON response") from exc
        if data is None:
            raise RgbNodeError(path, "null response")
        return data

    async def _post_model(
        self,
        path: str,
        model: type[T],
        creds: WalletCredentials | None = None,
        body: dict[str, Any] | None = None,
    ) -> T:
        data = await self._post_json(path, creds, body)
        return self._validate(path, TypeAdapter(model), data)

    async def _post_raw(
        self, path: str, creds: WalletCredentials | None = None, body: dict[str, Any] | None = None
    ) -> str:
        response = await self._post(path, creds, body)
        return response.text.strip().strip('"')

    @staticmethod
    def _validate(path: str, adapter: TypeAdapter, data: Any) -> Any:
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            raise RgbNodeError(path, f"unexpected response shape: {exc}") from exc


__all__ = ["RgbNodeClient"]
