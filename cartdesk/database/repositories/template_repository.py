from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from cartdesk.database.models.message_template import MessageTemplate
from cartdesk.utils.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_FIELDS = {"type", "name", "text", "category", "is_starred", "usage_count"}


class TemplateRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> list[MessageTemplate]:
        stmt = select(MessageTemplate).order_by(MessageTemplate.id.asc())
        return list(self.db.execute(stmt).scalars().all())

    def get(self, template_id: int) -> MessageTemplate | None:
        return self.db.get(MessageTemplate, template_id)

    def create(
        self,
        *,
        type: str,
        name: str,
        text: str,
        category: str,
        is_starred: bool = False,
        usage_count: int = 0,
    ) -> MessageTemplate:
        template = MessageTemplate(
            type=type,
            name=name,
            text=text,
            category=category,
            is_starred=is_starred,
            usage_count=usage_count,
        )
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        logger.info("create — template_id=%s type=%s name=%s", template.id, type, name)
        return template

    def update(self, template_id: int, updates: dict[str, Any]) -> MessageTemplate | None:
        template = self.get(template_id)
        if template is None:
            return None
        for field, value in updates.items():
            if field in TEMPLATE_FIELDS:
                setattr(template, field, value)
        self.db.commit()
        self.db.refresh(template)
        logger.info("update — template_id=%s fields=%s", template_id, sorted(updates))
        return template

    def increment_usage(self, template_id: int) -> MessageTemplate | None:
        template = self.get(template_id)
        if template is None:
            return None
        template.usage_count = (template.usage_count or 0) + 1
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete(self, template_id: int) -> bool:
        template = self.get(template_id)
        if template is None:
            return False
        self.db.delete(template)
        self.db.commit()
        logger.info("delete — template_id=%s", template_id)
        return True
