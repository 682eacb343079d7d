# storefront/services/store_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.models.store import (
    CurrencyModel,
    LanguageModel,
    ShippingMethodModel,
    StoreSettingsModel,
)
from storefront.domain.errors import InvalidInputError, NotFoundError
from storefront.domain.schemas import (
    CurrencyIn,
    CurrencyOut,
    LanguageIn,
    LanguageOut,
    ShippingMethodIn,
    ShippingMethodOut,
    StoreConfigIn,
)
from storefront.repos.store_repo import StoreRepo
from storefront.services.user_service import UserService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STORE_NAME = ""
DEFAULT_CURRENCY = "USD"
DEFAULT_LANGUAGE = "en"


def _single_default(entries, kind: str) -> None:
    if sum(1 for e in entries if e.is_default) > 1:
        raise InvalidInputError(f"Only one default {kind} is allowed.")


def _unique_codes(entries, kind: str) -> None:
    codes = [e.code for e in entries]
    if len(codes) != len(set(codes)):
        raise InvalidInputError(f"Duplicate {kind} code.")


class StoreService:
    """
    Store-wide settings: name, default currency and language, and the
    currencies, languages and shipping methods offered. Admin only.
    """

    def __init__(self, db: Session):
        self.repo = StoreRepo(db)
        self.users = UserService(db)

    def get_config(self, admin_id: int) -> Dict[str, Any]:
        self.users.require_admin(admin_id)
        return self._config()

    def update_config(self, admin_id: int, payload: StoreConfigIn) -> Dict[str, Any]:
        self.users.require_admin(admin_id)

        if payload.supported_currencies is not None:
            _unique_codes(payload.supported_currencies, "currency")
            _single_default(payload.supported_currencies, "currency")
        if payload.supported_languages is not None:
            _unique_codes(payload.supported_languages, "language")
            _single_default(payload.supported_languages, "language")

        try:
            self._update_settings(payload)
            if payload.supported_currencies is not None:
                self._sync_currencies(payload.supported_currencies)
            if payload.supported_languages is not None:
                self._sync_languages(payload.supported_languages)
            if payload.shipping_methods is not None:
                self._sync_shipping_methods(payload.shipping_methods)
            self.repo.commit()
        except NotFoundError:
            self.repo.rollback()
            raise

        logger.info(f"Store configuration updated by admin {admin_id}")
        return self._config()

    # helpers
    def _config(self) -> Dict[str, Any]:
        settings = self.repo.get_settings()
        return {
            "store_name": settings.store_name if settings else DEFAULT_STORE_NAME,
            "default_currency": settings.default_currency if settings else DEFAULT_CURRENCY,
            "default_language": settings.default_language if settings else DEFAULT_LANGUAGE,
            "supported_currencies": [CurrencyOut.model_validate(c) for c in self.repo.active(CurrencyModel)],
            "supported_languages": [LanguageOut.model_validate(lang) for lang in self.repo.active(LanguageModel)],
            "shipping_methods": [
                ShippingMethodOut.model_validate(m) for m in self.repo.active(ShippingMethodModel)
            ],
        }

    def _update_settings(self, payload: StoreConfigIn) -> None:
        settings = self.repo.get_settings()
        if settings is None:
            settings = StoreSettingsModel(
                store_name=DEFAULT_STORE_NAME,
                default_currency=DEFAULT_CURRENCY,
                default_language=DEFAULT_LANGUAGE,
            )
            self.repo.add(settings)

        if payload.store_name is not None:
            settings.store_name = payload.store_name
        if payload.default_currency is not None:
            settings.default_currency = payload.default_currency
        if payload.default_language is not None:
            settings.default_language = payload.default_language

    def _sync_currencies(self, currencies: List[CurrencyIn]) -> None:
        for data in currencies:
            currency = self.repo.by_code(CurrencyModel, data.code)
            if currency is None:
                currency = CurrencyModel(code=data.code)
                self.repo.add(currency)
            currency.symbol = data.symbol
            currency.name = data.name
            currency.exchange_rate = data.exchange_rate
            currency.is_default = data.is_default
            currency.is_active = data.is_active
            currency.deleted_at = None
        self.repo.flush()
        self.repo.soft_delete_missing(CurrencyModel, CurrencyModel.code, [c.code for c in currencies])

    def _sync_languages(self, languages: List[LanguageIn]) -> None:
        for data in languages:
            language = self.repo.by_code(LanguageModel, data.code)
            if language is None:
                language = LanguageModel(code=data.code)
                self.repo.add(language)
            language.name = data.name
            language.is_default = data.is_default
            language.is_active = data.is_active
            language.deleted_at = None
        self.repo.flush()
        self.repo.soft_delete_missing(LanguageModel, LanguageModel.code, [lang.code for lang in languages])

    def _sync_shipping_methods(self, methods: List[ShippingMethodIn]) -> None:
        kept = []
        for data in methods:
            if data.id is not None:
                method = self.repo.shipping_method(data.id)
                if method is None or method.deleted_at is not None:
                    raise NotFoundError(f"Shipping method {data.id} not found.")
            else:
                method = ShippingMethodModel()
                self.repo.add(method)
            method.name = data.name
            method.cost = data.cost
            method.is_active = data.is_active
            self.repo.flush()
            kept.append(method.id)
        # methods created in this request are kept too
        self.repo.soft_delete_missing(ShippingMethodModel, ShippingMethodModel.id, kept)
