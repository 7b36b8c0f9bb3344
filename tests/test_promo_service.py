import pytest
from fastapi import HTTPException

from app.core.exceptions import NotFound, PromoRejected
from app.models.promo_models import PromoUsage
from app.schemas.promo_schemas import PromoCreate
from app.services import promo_service
from conftest import CUSTOMER, OTHER_CUSTOMER, OWNER


async def test_codes_are_stored_upper_case(db):
    promo = await promo_service.create_promo(db, PromoCreate(code="  save10 ", percentage=10), OWNER)
    assert promo.code == "SAVE10"

    applied = await promo_service.validate_promo(db, "Save10", CUSTOMER.email)
    assert applied.code == "SAVE10"
    assert applied.percentage == 10


async def test_duplicate_code_is_refused(db):
    await promo_service.create_promo(db, PromoCreate(code="SAVE10", percentage=10), OWNER)
    with pytest.raises(HTTPException) as exc:
        await promo_service.create_promo(db, PromoCreate(code="save10", percentage=20), OWNER)
    assert exc.value.status_code == 400


async def test_unknown_code_is_rejected(db):
    with pytest.raises(PromoRejected):
        await promo_service.validate_promo(db, "NOPE", CUSTOMER.email)


async def test_used_code_is_rejected_for_that_customer_only(db):
    await promo_service.create_promo(db, PromoCreate(code="SAVE10", percentage=10), OWNER)
    db.add(PromoUsage(promo_code="SAVE10", user_email=CUSTOMER.email))
    await db.commit()

    with pytest.raises(PromoRejected):
        await promo_service.validate_promo(db, "SAVE10", CUSTOMER.email)
    assert (await promo_service.validate_promo(db, "SAVE10", OTHER_CUSTOMER.email)).percentage == 10


async def test_list_and_delete(db):
    first = await promo_service.create_promo(db, PromoCreate(code="A10", percentage=10), OWNER)
    await promo_service.create_promo(db, PromoCreate(code="B20", percentage=20), OWNER)
    assert {p.code for p in await promo_service.list_promos(db)} == {"A10", "B20"}

    await promo_service.delete_promo(db, first.id, OWNER)
    assert [p.code for p in await promo_service.list_promos(db)] == ["B20"]
    with pytest.raises(NotFound):
        await promo_service.delete_promo(db, first.id, OWNER)
