from marshmallow import fields, ValidationError

from ledger.utils.timezone_utils import format_datetime_for_api, parse_datetime_string


class ApiDateTime(fields.Field):
    """Datetime field that reads loose client formats and writes ISO 8601 UTC."""

    default_error_messages = {'invalid': 'Invalid date format'}

    def _serialize(self, value, attr, obj, **kwargs):
        return format_datetime_for_api(value)

    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return parse_datetime_string(value)
        except ValueError as error:
            raise self.make_error('invalid') from error
