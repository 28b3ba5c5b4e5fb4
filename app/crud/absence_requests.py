from app.crud.owned_records import CRUDOwnedRecord
from app.models.absence_request import AbsenceRequest


class CRUDAbsenceRequest(CRUDOwnedRecord[AbsenceRequest]):
    pass


crud_absence_request = CRUDAbsenceRequest(
    AbsenceRequest,
    owner_field="student_id",
    name_field="student_name",
    class_field="class_id",
)
