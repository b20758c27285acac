from typing import Dict

from django.http import Http404, HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from filedb.conf import get_database_alias
from filedb.errors import DuplicateEntry, InvalidEntry
from filedb.serializers import (
    EntryRefSerializer,
    StoredFileSerializer,
    VersionRangeQuerySerializer,
    VersionSerializer,
    parse_timestamp,
)
from filedb.store import FileStore

OCTET_STREAM = "application/octet-stream"
TIMESTAMP_HEADER = "X-Filedb-Timestamp"

_stores: Dict[str, FileStore] = {}

KEY_PARAMETER = OpenApiParameter(
    name="key",
    type=str,
    location=OpenApiParameter.PATH,
    description="The file key. Keys that are empty or contain '/' cannot be addressed here.",
)
TIMESTAMP_PARAMETER = OpenApiParameter(
    name="timestamp",
    type=str,
    location=OpenApiParameter.PATH,
    description="ISO-8601 timestamp of the version, including its UTC offset",
)


def get_store() -> FileStore:
    """Initialized store for the configured database alias."""
    alias = get_database_alias()
    store = _stores.get(alias)
    if store is None:
        store = FileStore(using=alias)
        store.initialize()
        _stores[alias] = store
    return store


def _binary_response(payload: bytes, timestamp) -> HttpResponse:
    response = HttpResponse(payload, content_type=OCTET_STREAM)
    response[TIMESTAMP_HEADER] = timestamp.isoformat()
    return response


class FileVersionView(APIView):
    """
    Handle one stored version, addressed by key and timestamp.

    Keys travel as a single path segment, so the empty key and keys containing
    '/' are only reachable through ``FileStore``, not through these routes.
    """

    @extend_schema(
        operation_id="read_file_version",
        summary="Read a file version",
        description="Return the raw bytes stored for the exact key and timestamp.",
        parameters=[KEY_PARAMETER, TIMESTAMP_PARAMETER],
        responses={
            (200, OCTET_STREAM): OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="The stored payload",
            ),
            400: OpenApiResponse(description="Malformed timestamp"),
            404: OpenApiResponse(description="No version stored for this key and timestamp"),
        },
        tags=["Files"],
    )
    def get(self, request, key: str, timestamp: str):
        when = parse_timestamp(timestamp)
        payload = get_store().get(key, when)
        if payload is None:
            raise Http404
        return _binary_response(payload, when)

    @extend_schema(
        operation_id="put_file_version",
        summary="Store a file version",
        description=(
            "Store the raw request body as the version of the key at the given "
            "timestamp. Versions are immutable: storing the same key and timestamp "
            "twice is rejected and the first payload is kept."
        ),
        parameters=[KEY_PARAMETER, TIMESTAMP_PARAMETER],
        request={OCTET_STREAM: OpenApiTypes.BINARY},
        responses={
            201: OpenApiResponse(
                response=StoredFileSerializer,
                description="Version stored",
            ),
            400: OpenApiResponse(description="Malformed timestamp"),
            409: OpenApiResponse(description="A version already exists at this timestamp"),
        },
        tags=["Files"],
    )
    def put(self, request, key: str, timestamp: str):
        when = parse_timestamp(timestamp)
        payload = request.body

        try:
            get_store().put(key, when, payload)
        except DuplicateEntry as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except InvalidEntry as exc:
            raise ValidationError({"detail": str(exc)}) from exc

        data = StoredFileSerializer({"key": key, "timestamp": when, "size": len(payload)}).data
        return Response(data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="delete_file_version",
        summary="Delete a file version",
        description="Remove the version stored for the exact key and timestamp.",
        parameters=[KEY_PARAMETER, TIMESTAMP_PARAMETER],
        responses={
            204: OpenApiResponse(description="Version deleted"),
            400: OpenApiResponse(description="Malformed timestamp"),
            404: OpenApiResponse(description="No version stored for this key and timestamp"),
        },
        tags=["Files"],
    )
    def delete(self, request, key: str, timestamp: str):
        when = parse_timestamp(timestamp)
        if not get_store().delete(key, when):
            raise Http404
        return Response(status=status.HTTP_204_NO_CONTENT)


class FileHistoryView(APIView):
    """
    List the versions stored under a key, optionally within a time range.

    Same key limits as ``FileVersionView``: no empty keys, no '/'.
    """

    @extend_schema(
        operation_id="list_file_versions",
        summary="List versions of a file",
        description=(
            "List the versions stored under the key, oldest first. When 'from' and "
            "'to' are given only versions inside that range are returned; each bound "
            "is inclusive or exclusive independently."
        ),
        parameters=[
            KEY_PARAMETER,
            OpenApiParameter(
                name="from",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Lower bound (ISO-8601 with offset)",
                required=False,
            ),
            OpenApiParameter(
                name="to",
                type=str,
                location=OpenApiParameter.QUERY,
                description="Upper bound (ISO-8601 with offset)",
                required=False,
            ),
            OpenApiParameter(
                name="inclusive_from",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Include a version exactly at the lower bound (default: true)",
                required=False,
            ),
            OpenApiParameter(
                name="inclusive_to",
                type=bool,
                location=OpenApiParameter.QUERY,
                description="Include a version exactly at the upper bound (default: false)",
                required=False,
            ),
        ],
        responses={
            200: OpenApiResponse(
                response=VersionSerializer(many=True),
                description="Versions in ascending timestamp order",
            ),
            400: OpenApiResponse(description="Invalid range parameters"),
        },
        tags=["Files"],
    )
    def get(self, request, key: str):
        # Plain dict so missing booleans fall back to their defaults
        serializer = VersionRangeQuerySerializer(data=request.query_params.dict())
        serializer.is_valid(raise_exception=True)
        bounds = serializer.validated_data

        versions = get_store().version_info(
            key,
            start=bounds.get("from"),
            end=bounds.get("to"),
            inclusive_from=bounds["inclusive_from"],
            inclusive_to=bounds["inclusive_to"],
        )
        items = [version._asdict() for version in versions]
        return Response(VersionSerializer(items, many=True).data)


class LatestFileView(APIView):
    """Return the newest version stored under a key (non-empty, without '/')."""

    @extend_schema(
        operation_id="read_latest_file_version",
        summary="Read the latest version of a file",
        description=(
            "Return the raw bytes of the version with the greatest timestamp. The "
            f"timestamp is returned in the {TIMESTAMP_HEADER} header."
        ),
        parameters=[KEY_PARAMETER],
        responses={
            (200, OCTET_STREAM): OpenApiResponse(
                response=OpenApiTypes.BINARY,
                description="The newest payload",
            ),
            404: OpenApiResponse(description="No versions stored under this key"),
        },
        tags=["Files"],
    )
    def get(self, request, key: str):
        version = get_store().latest(key)
        if version is None:
            raise Http404
        return _binary_response(version.payload, version.timestamp)


class FileIndexView(APIView):
    """List every stored (key, timestamp) pair."""

    @extend_schema(
        operation_id="list_files",
        summary="List all stored versions",
        description="Every stored key and timestamp, ordered by key then timestamp.",
        responses={
            200: OpenApiResponse(
                response=EntryRefSerializer(many=True),
                description="All stored versions",
            ),
        },
        tags=["Files"],
    )
    def get(self, request):
        entries = [entry._asdict() for entry in get_store().list_all()]
        return Response(EntryRefSerializer(entries, many=True).data)
