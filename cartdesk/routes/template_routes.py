from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from cartdesk.database.engine import get_db
from cartdesk.database.repositories.checkout_repository import CheckoutRepository
from cartdesk.database.repositories.template_repository import TemplateRepository
from cartdesk.schemas import TemplateDelete, TemplateFill, TemplateIn, TemplateOut, TemplateUpdate
from cartdesk.services.cart_view import checkout_row_to_record, normalize
from cartdesk.services.template_service import fill_template, whatsapp_link

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", response_model=list[TemplateOut])
def list_templates(db: Session = Depends(get_db)):
    return TemplateRepository(db).list_all()


@router.post("", status_code=201, response_model=TemplateOut)
def create_template(body: TemplateIn, db: Session = Depends(get_db)):
    if not body.type or not body.name or not body.text or not body.category:
        raise HTTPException(status_code=400, detail="Missing required fields")
    return TemplateRepository(db).create(
        type=body.type,
        name=body.name,
        text=body.text,
        category=body.category,
        is_starred=body.is_starred,
        usage_count=body.usage_count,
    )


@router.put("", response_model=TemplateOut)
def update_template(body: TemplateUpdate, db: Session = Depends(get_db)):
    if body.id is None:
        raise HTTPException(status_code=400, detail="Missing id")
    updates = body.model_dump(exclude={"id"}, exclude_none=True)
    template = TemplateRepository(db).update(body.id, updates)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template


@router.delete("", status_code=204)
def delete_template(body: TemplateDelete, db: Session = Depends(get_db)):
    if body.id is None:
        raise HTTPException(status_code=400, detail="Missing id")
    if not TemplateRepository(db).delete(body.id):
        raise HTTPException(status_code=404, detail="Template not found")
    return Response(status_code=204)


@router.post("/{template_id}/fill")
def fill_for_cart(template_id: int, body: TemplateFill, db: Session = Depends(get_db)):
    """Render a template for a stored cart and count the use."""
    repo = TemplateRepository(db)
    template = repo.get(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    row = CheckoutRepository(db).get(body.cart_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Cart not found")

    cart = normalize(checkout_row_to_record(row), "stored")
    text = fill_template(template.text, cart)
    repo.increment_usage(template_id)

    link = whatsapp_link(cart.customer.phone, cart.customer.name, text) if template.type == "whatsapp" else None
    return {"text": text, "whatsapp_link": link, "cart_id": cart.id}
