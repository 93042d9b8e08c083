import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import settings
from ..models import (
    Cost, PayerCredentials, ProductKind, PurchaseRequest, RemoteOutcome, VerificationMode, get_flow
)
from ..utils.logger import logger
from .auth import AuthKeyIssuer
from .cancellation import CancelToken
from .credentials import CredentialEncoding, CredentialPreparer
from .order_flow import OrderFlowController, ReconciliationPolicy, validate_wallet_type
from .orders import ManualOrderService
from .transport import HttpTransport


class FragmentAPIClient:
    """
    Client for the Fragment API: Telegram Stars, Premium and TON purchases.
    Default seed, cookies and auth key come from settings unless passed here or per call.
    """

    def __init__(
        self,
        seed: Optional[str] = None,
        cookies: Optional[str] = None,
        auth_key: Optional[str] = None,
        base_url: Optional[str] = None,
        encoding: Optional[CredentialEncoding] = None,
        transport: Optional[HttpTransport] = None,
        reconciliation: Optional[ReconciliationPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.transport = transport or HttpTransport(base_url)
        self.preparer = CredentialPreparer(
            encoding=encoding,
            default_seed=seed,
            default_cookies=cookies,
            default_auth_key=auth_key
        )
        self.flow_controller = OrderFlowController(
            self.transport,
            self.preparer,
            reconciliation=reconciliation,
            sleep=sleep,
            clock=clock
        )
        self.orders = ManualOrderService(self.transport, self.preparer)
        self.auth = AuthKeyIssuer(self.transport, self.preparer, sleep=sleep)

        logger.info(f"Fragment API client initialized ({self.transport.base_url})")

    async def __aenter__(self) -> "FragmentAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self.transport.close()

    # Read operations

    async def ping(self) -> Dict[str, Any]:
        return await self.transport.get("/v2/ping")

    async def get_balance(
        self,
        seed: Optional[str] = None,
        wallet_type: Optional[str] = None,
        auth_key: Optional[str] = None
    ) -> Dict[str, Any]:
        params = {'wallet_type': validate_wallet_type(wallet_type or settings.wallet_type)}
        if auth_key:
            params['auth_key'] = auth_key
        else:
            params['seed'] = self.preparer.prepare_seed(seed)
        return await self.transport.get("/v2/getBalance", params=params)

    async def get_user_info(self, username: str, cookies: Optional[str] = None) -> Dict[str, Any]:
        params = {
            'username': username,
            'fragment_cookies': self.preparer.prepare_cookies(cookies)
        }
        return await self.transport.get("/v2/getUserInfo", params=params)

    async def get_orders(self, seed: Optional[str] = None, limit: int = 10, offset: int = 0) -> Dict[str, Any]:
        params = {
            'seed': self.preparer.prepare_seed(seed),
            'limit': limit,
            'offset': offset
        }
        return await self.transport.get("/v2/getOrders", params=params)

    async def create_auth_key(self, cookies: Optional[str] = None, seed: Optional[str] = None) -> str:
        return await self.auth.issue(cookies, seed)

    # Purchase flows

    async def purchase(self, request: PurchaseRequest, cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        flow = get_flow(request.kind, request.mode)
        return await self.flow_controller.purchase(flow, request, cancel)

    async def buy(
        self,
        kind: ProductKind,
        mode: VerificationMode,
        recipient: str,
        quantity: Optional[int] = None,
        credentials: Optional[PayerCredentials] = None,
        wallet_type: Optional[str] = None,
        show_sender: bool = False,
        custom_order: Optional[Any] = None,
        cancel: Optional[CancelToken] = None
    ) -> RemoteOutcome:
        request = PurchaseRequest(
            kind=kind,
            mode=mode,
            recipient=recipient,
            quantity=quantity,
            credentials=credentials or PayerCredentials(),
            wallet_type=wallet_type,
            show_sender=show_sender,
            custom_order=custom_order
        )
        return await self.purchase(request, cancel)

    async def buy_stars(self, username: str, amount: Optional[int] = None, credentials: Optional[PayerCredentials] = None,
                        wallet_type: Optional[str] = None, show_sender: bool = False,
                        custom_order: Optional[Any] = None,
                        cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        return await self.buy(ProductKind.STARS, VerificationMode.STANDARD, username, amount,
                              credentials, wallet_type, show_sender, custom_order, cancel)

    async def buy_stars_without_kyc(self, username: str, amount: Optional[int] = None,
                                    credentials: Optional[PayerCredentials] = None,
                                    wallet_type: Optional[str] = None,
                                    custom_order: Optional[Any] = None,
                                    cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        return await self.buy(ProductKind.STARS, VerificationMode.WITHOUT_KYC, username, amount,
                              credentials, wallet_type, False, custom_order, cancel)

    async def buy_premium(self, username: str, duration: Optional[int] = None,
                          credentials: Optional[PayerCredentials] = None,
                          wallet_type: Optional[str] = None, show_sender: bool = False,
                          custom_order: Optional[Any] = None,
                          cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        return await self.buy(ProductKind.PREMIUM, VerificationMode.STANDARD, username, duration,
                              credentials, wallet_type, show_sender, custom_order, cancel)

    async def buy_premium_without_kyc(self, username: str, duration: Optional[int] = None,
                                      credentials: Optional[PayerCredentials] = None,
                                      wallet_type: Optional[str] = None,
                                      custom_order: Optional[Any] = None,
                                      cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        return await self.buy(ProductKind.PREMIUM, VerificationMode.WITHOUT_KYC, username, duration,
                              credentials, wallet_type, False, custom_order, cancel)

    async def buy_ton(self, username: str, amount: Optional[int] = None, credentials: Optional[PayerCredentials] = None,
                      wallet_type: Optional[str] = None, show_sender: bool = False,
                      custom_order: Optional[Any] = None,
                      cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        return await self.buy(ProductKind.TON, VerificationMode.STANDARD, username, amount,
                              credentials, wallet_type, show_sender, custom_order, cancel)

    async def buy_ton_without_kyc(self, username: str, amount: Optional[int] = None,
                                  credentials: Optional[PayerCredentials] = None,
                                  wallet_type: Optional[str] = None,
                                  custom_order: Optional[Any] = None,
                                  cancel: Optional[CancelToken] = None) -> RemoteOutcome:
        return await self.buy(ProductKind.TON, VerificationMode.WITHOUT_KYC, username, amount,
                              credentials, wallet_type, False, custom_order, cancel)

    # Manual order management

    async def create_order(self, kind: ProductKind, username: str, quantity: Optional[int] = None,
                           credentials: Optional[PayerCredentials] = None, show_sender: bool = False,
                           mode: VerificationMode = VerificationMode.STANDARD,
                           custom_order: Optional[Any] = None) -> RemoteOutcome:
        return await self.orders.create_order(
            get_flow(kind, mode), username, quantity, credentials, show_sender, custom_order
        )

    async def pay_order(self, kind: ProductKind, order_id: str, cost: Cost,
                        credentials: Optional[PayerCredentials] = None, wallet_type: Optional[str] = None,
                        mode: VerificationMode = VerificationMode.STANDARD) -> RemoteOutcome:
        return await self.orders.pay_order(get_flow(kind, mode), order_id, cost, credentials, wallet_type)

    async def get_order_status(self, kind: ProductKind, order_id: str,
                               mode: VerificationMode = VerificationMode.STANDARD) -> RemoteOutcome:
        return await self.orders.get_order_status(get_flow(kind, mode), order_id)

    async def create_stars_order(self, username: str, amount: int, cookies: Optional[str] = None,
                                 show_sender: bool = False) -> RemoteOutcome:
        return await self.create_order(ProductKind.STARS, username, amount,
                                       PayerCredentials(cookies=cookies), show_sender)

    async def create_stars_without_kyc_order(self, username: str, amount: int) -> RemoteOutcome:
        return await self.create_order(ProductKind.STARS, username, amount, mode=VerificationMode.WITHOUT_KYC)

    async def create_premium_order(self, username: str, duration: int = 3, cookies: Optional[str] = None,
                                   show_sender: bool = False) -> RemoteOutcome:
        return await self.create_order(ProductKind.PREMIUM, username, duration,
                                       PayerCredentials(cookies=cookies), show_sender)

    async def create_premium_without_kyc_order(self, username: str, duration: int = 3) -> RemoteOutcome:
        return await self.create_order(ProductKind.PREMIUM, username, duration, mode=VerificationMode.WITHOUT_KYC)

    async def create_ton_order(self, username: str, amount: int, cookies: Optional[str] = None,
                               show_sender: bool = False) -> RemoteOutcome:
        return await self.create_order(ProductKind.TON, username, amount,
                                       PayerCredentials(cookies=cookies), show_sender)

    async def create_ton_without_kyc_order(self, username: str, amount: int) -> RemoteOutcome:
        return await self.create_order(ProductKind.TON, username, amount, mode=VerificationMode.WITHOUT_KYC)

    async def pay_stars_order(self, order_id: str, cost: Cost, seed: Optional[str] = None,
                              cookies: Optional[str] = None, wallet_type: Optional[str] = None) -> RemoteOutcome:
        return await self.pay_order(ProductKind.STARS, order_id, cost,
                                    PayerCredentials(seed=seed, cookies=cookies), wallet_type)

    async def pay_stars_without_kyc_order(self, order_id: str, cost: Cost, seed: Optional[str] = None,
                                          wallet_type: Optional[str] = None) -> RemoteOutcome:
        return await self.pay_order(ProductKind.STARS, order_id, cost, PayerCredentials(seed=seed),
                                    wallet_type, mode=VerificationMode.WITHOUT_KYC)

    async def pay_premium_order(self, order_id: str, cost: Cost, seed: Optional[str] = None,
                                cookies: Optional[str] = None, wallet_type: Optional[str] = None) -> RemoteOutcome:
        return await self.pay_order(ProductKind.PREMIUM, order_id, cost,
                                    PayerCredentials(seed=seed, cookies=cookies), wallet_type)

    async def pay_premium_without_kyc_order(self, order_id: str, cost: Cost, seed: Optional[str] = None,
                                            wallet_type: Optional[str] = None) -> RemoteOutcome:
        return await self.pay_order(ProductKind.PREMIUM, order_id, cost, PayerCredentials(seed=seed),
                                    wallet_type, mode=VerificationMode.WITHOUT_KYC)

    async def pay_ton_order(self, order_id: str, cost: Cost, seed: Optional[str] = None,
                            cookies: Optional[str] = None, wallet_type: Optional[str] = None) -> RemoteOutcome:
        return await self.pay_order(ProductKind.TON, order_id, cost,
                                    PayerCredentials(seed=seed, cookies=cookies), wallet_type)

    async def pay_ton_without_kyc_order(self, order_id: str, cost: Cost, seed: Optional[str] = None,
                                        wallet_type: Optional[str] = None) -> RemoteOutcome:
        return await self.pay_order(ProductKind.TON, order_id, cost, PayerCredentials(seed=seed),
                                    wallet_type, mode=VerificationMode.WITHOUT_KYC)

    async def get_stars_order_status(self, order_id: str) -> RemoteOutcome:
        return await self.get_order_status(ProductKind.STARS, order_id)

    async def get_stars_without_kyc_order_status(self, order_id: str) -> RemoteOutcome:
        return await self.get_order_status(ProductKind.STARS, order_id, VerificationMode.WITHOUT_KYC)

    async def get_premium_order_status(self, order_id: str) -> RemoteOutcome:
        return await self.get_order_status(ProductKind.PREMIUM, order_id)

    async def get_premium_without_kyc_order_status(self, order_id: str) -> RemoteOutcome:
        return await self.get_order_status(ProductKind.PREMIUM, order_id, VerificationMode.WITHOUT_KYC)

    async def get_ton_order_status(self, order_id: str) -> RemoteOutcome:
        return await self.get_order_status(ProductKind.TON, order_id)

    async def get_ton_without_kyc_order_status(self, order_id: str) -> RemoteOutcome:
        return await self.get_order_status(ProductKind.TON, order_id, VerificationMode.WITHOUT_KYC)
