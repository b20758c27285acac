from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import serializers


class AwareDateTimeField(serializers.Field):
    """ISO-8601 timestamp that must carry a UTC offset."""

    default_error_messages = {
        "invalid": "Enter an ISO-8601 timestamp.",
        "naive": "Timestamp must include a UTC offset.",
    }

    def to_internal_value(self, data):
        try:
            value = parse_datetime(str(data))
        except ValueError:
            value = None
        if value is None:
            self.fail("invalid")
        if not timezone.is_aware(value):
            self.fail("naive")
        return value

    def to_representation(self, value):
        return value.isoformat()


def parse_timestamp(value: str, field_name: str = "timestamp"):
    """Parse a timestamp taken from a URL, raising a 400-mapped ValidationError."""
    try:
        return AwareDateTimeField().run_validation(value)
    except serializers.ValidationError as exc:
        raise serializers.ValidationError({field_name: exc.detail}) from exc


class StoredFileSerializer(serializers.Serializer):
    """Identity and size of one stored version."""

    key = serializers.CharField(allow_blank=True)
    timestamp = AwareDateTimeField()
    size = serializers.IntegerField(help_text="Payload size in bytes")


class VersionSerializer(serializers.Serializer):
    """A version listed under a key."""

    timestamp = AwareDateTimeField()
    size = serializers.IntegerField(help_text="Payload size in bytes")


class EntryRefSerializer(serializers.Serializer):
    key = serializers.CharField(allow_blank=True)
    timestamp = AwareDateTimeField()


class VersionRangeQuerySerializer(serializers.Serializer):
    """
    Query parameters selecting a time range of versions.

    The bounds are exposed as ``from`` and ``to``, which cannot be declared
    as class attributes.
    """

    lower_bound = AwareDateTimeField(
        required=False,
        help_text="Lower bound of the range (ISO-8601 with offset)",
    )
    upper_bound = AwareDateTimeField(
        required=False,
        help_text="Upper bound of the range (ISO-8601 with offset)",
    )
    inclusive_from = serializers.BooleanField(
        required=False,
        default=True,
        help_text="Include a version exactly at the lower bound",
    )
    inclusive_to = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Include a version exactly at the upper bound",
    )

    def get_fields(self):
        fields = super().get_fields()
        fields["from"] = fields.pop("lower_bound")
        fields["to"] = fields.pop("upper_bound")
        return fields

    def validate(self, attrs):
        if ("from" in attrs) != ("to" in attrs):
            missing = "to" if "from" in attrs else "from"
            raise serializers.ValidationError(
                {missing: "from and to must be given together."}
            )
        return attrs
