import math
from decimal import Decimal, InvalidOperation

from flask import current_app

from unilib.errors import Forbidden, InvalidInput, NotFound
from unilib.repositories.university_repo import UniversityRepo
from unilib.tenant import TenantContext


class SettingsService:
    @staticmethod
    def get_university(ctx: TenantContext):
        uni = UniversityRepo.get(ctx.university_id)
        if not uni:
            raise NotFound("University not found")
        return uni

    @staticmethod
    def validate(data: dict) -> dict:
        if not isinstance(data, dict):
            raise InvalidInput("JSON object body required")

        errors = []
        updates = {}

        if data.get("loanDaysDefault") is not None:
            raw = data["loanDaysDefault"]
            try:
                value = float(raw)
                if isinstance(raw, bool) or not math.isfinite(value) or value < 1:
                    raise ValueError
                if value != math.floor(value):
                    raise ValueError
                updates["loan_days_default"] = int(value)
            except (TypeError, ValueError):
                errors.append("loanDaysDefault must be a whole number >= 1")

        if data.get("finePerDay") is not None:
            raw = data["finePerDay"]
            try:
                value = Decimal(str(raw))
                if isinstance(raw, bool) or not value.is_finite() or value < 0:
                    raise ValueError
                updates["fine_per_day"] = value.quantize(Decimal("0.01"))
            except (InvalidOperation, TypeError, ValueError):
                errors.append("finePerDay must be >= 0")

        if errors:
            raise InvalidInput("; ".join(errors), errors=errors)
        return updates

    @staticmethod
    def update_settings(ctx: TenantContext, data: dict):
        if not ctx.is_admin:
            raise Forbidden("Forbidden")

        updates = SettingsService.validate({} if data is None else data)
        uni = SettingsService.get_university(ctx)
        for k, v in updates.items():
            setattr(uni, k, v)

        UniversityRepo.update()
        current_app.logger.info(
            f"[settings] university={uni.id} loan_days_default={uni.loan_days_default} "
            f"fine_per_day={uni.fine_per_day}"
        )
        return uni
