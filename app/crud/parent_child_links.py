from app.crud.owned_records import CRUDOwnedRecord
from app.models.parent_child_link import ParentChildLink


class CRUDParentChildLink(CRUDOwnedRecord[ParentChildLink]):
    pass


crud_parent_child_link = CRUDParentChildLink(
    ParentChildLink,
    owner_field="student_id",
    name_field="child_name_submitted",
    class_field="class_id",
)
