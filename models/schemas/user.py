from marshmallow import EXCLUDE, Schema, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _not_blank(value):
    return isinstance(value, str) and len(value.strip()) > 0


class UserCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    nickname = fields.String(required=True, validate=[validate.Length(max=255), _not_blank])
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.String(required=True, load_only=True, validate=_not_blank)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.String(load_default=None)
    password = fields.String(load_default=None, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    nickname = fields.String()
    email = fields.String()
    created_at = fields.DateTime()
