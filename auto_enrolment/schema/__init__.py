from auto_enrolment.schema.records import TEXT_FIELDS, PayrollRecord, records_from_frame

__all__ = ["PayrollRecord", "TEXT_FIELDS", "records_from_frame"]
