from __future__ import annotations

from sqlalchemy import delete, select

from app.wms.db.models import InboundPlan, InboundPlanLine, InboundReceipt


class InboundPlanRepository:
    def __init__(self, db):
        self.db = db

    def list_plans(self, org_id: str, *, limit: int = 50, offset: int = 0) -> list[InboundPlan]:
        query = (
            select(InboundPlan)
            .where(InboundPlan.org_id == org_id)
            .order_by(InboundPlan.created_at.desc(), InboundPlan.plan_no.desc())
            .limit(limit)
            .offset(offset)
        )
        return self.db.execute(query).scalars().all()

    def get_plan(self, plan_id: str, org_id: str) -> InboundPlan | None:
        return (
            self.db.execute(select(InboundPlan).where(InboundPlan.id == plan_id, InboundPlan.org_id == org_id))
            .scalars()
            .first()
        )

    def get_lines(self, plan_id: str) -> list[InboundPlanLine]:
        return (
            self.db.execute(
                select(InboundPlanLine)
                .where(InboundPlanLine.plan_id == plan_id)
                .order_by(InboundPlanLine.created_at, InboundPlanLine.id)
            )
            .scalars()
            .all()
        )

    def document_numbers_taken(self, org_id: str, plan_no: str, receipt_no: str) -> bool:
        plan_hit = (
            self.db.execute(select(InboundPlan.id).where(InboundPlan.org_id == org_id, InboundPlan.plan_no == plan_no))
            .scalars()
            .first()
        )
        if plan_hit is not None:
            return True
        receipt_hit = (
            self.db.execute(
                select(InboundReceipt.id).where(InboundReceipt.org_id == org_id, InboundReceipt.receipt_no == receipt_no)
            )
            .scalars()
            .first()
        )
        return receipt_hit is not None

    def add_lines(self, plan: InboundPlan, lines: list[dict]) -> list[InboundPlanLine]:
        created = []
        for values in lines:
            line = InboundPlanLine(org_id=plan.org_id, plan_id=plan.id, **values)
            self.db.add(line)
            created.append(line)
        self.db.flush()
        return created

    def replace_lines(self, plan: InboundPlan, lines: list[dict]) -> list[InboundPlanLine]:
        self.db.execute(
            delete(InboundPlanLine)
            .where(InboundPlanLine.plan_id == plan.id)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(plan, ["lines"])
        return self.add_lines(plan, lines)
