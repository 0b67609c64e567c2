from marshmallow import EXCLUDE, Schema, fields, validate


class StudentPayloadSchema(Schema):
    """Payload of optimize and rebuild jobs."""
    class Meta:
        unknown = EXCLUDE

    student_id = fields.Str(data_key='studentId', required=True, validate=validate.Length(min=1))


class InitializeCardStatesPayloadSchema(StudentPayloadSchema):
    deck_id = fields.Str(data_key='deckId', required=True, validate=validate.Length(min=1))


class EnqueueJobSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    type = fields.Str(required=True)
    payload = fields.Dict(load_default=dict)
