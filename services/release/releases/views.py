"""API views for release trains."""
from __future__ import annotations

from typing import Optional

from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response

from .analytics import train_analytics
from .engine import ProgressionEngine
from .models import App
from .registry import ReleaseRegistry, build_board
from .roster import RosterEditor
from .serializers import (
    AppSerializer,
    NoteCreateSerializer,
    NoteSerializer,
    ReleaseSummarySerializer,
    RosterUpdateSerializer,
    StopDetailsSerializer,
    StopSerializer,
    StopStatusUpdateSerializer,
    TrackSerializer,
    TrainAnalyticsSerializer,
    TrainCreateSerializer,
    TrainUpdateSerializer,
    serialize_train_view,
)
from .services import ReleaseService


def _int_param(name: str, value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError({name: "Must be an integer."}) from exc


def _flag(value: Optional[str]) -> Optional[bool]:
    if value is None or value == "":
        return None
    return value.lower() in {"1", "true", "yes"}


class AppViewSet(viewsets.ModelViewSet):
    lookup_value_regex = "[0-9]+"
    queryset = App.objects.all()
    serializer_class = AppSerializer
    filter_backends = [SearchFilter, OrderingFilter]
    search_fields = ["name", "description"]
    ordering_fields = ["name", "created_at"]
    ordering = ["name"]

    def create(self, request: Request, *args, **kwargs):  # type: ignore[override]
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        app = ReleaseService().create_app(
            request.user,
            serializer.validated_data["name"],
            serializer.validated_data.get("description"),
        )
        return Response(self.get_serializer(app).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, *args, **kwargs):  # type: ignore[override]
        partial = kwargs.pop("partial", False)
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        app = ReleaseService().update_app(
            request.user, int(kwargs["pk"]), **serializer.validated_data
        )
        return Response(self.get_serializer(app).data)

    def destroy(self, request: Request, *args, **kwargs):  # type: ignore[override]
        ReleaseService().delete_app(request.user, int(kwargs["pk"]))
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReleaseTrainViewSet(viewsets.ViewSet):
    """Release trains and their progression actions."""

    lookup_value_regex = "[0-9]+"

    def list(self, request: Request) -> Response:
        app_id = request.query_params.get("app_id")
        views = ReleaseService().list_train_views(
            app_id=_int_param("app_id", app_id),
            platform=request.query_params.get("platform") or None,
            is_active=_flag(request.query_params.get("is_active")),
        )
        return Response([serialize_train_view(view) for view in views])

    def create(self, request: Request) -> Response:
        serializer = TrainCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        view = ReleaseService().create_train(
            request.user,
            data["app_id"],
            data["platform"],
            data["version"],
            deadline=data.get("deadline"),
            stops=data.get("stops"),
        )
        return Response(serialize_train_view(view), status=status.HTTP_201_CREATED)

    def retrieve(self, request: Request, pk: str) -> Response:
        view = ReleaseService().get_train_view(int(pk))
        return Response(serialize_train_view(view, include_notes=True))

    def partial_update(self, request: Request, pk: str) -> Response:
        serializer = TrainUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        service = ReleaseService()
        if "version" in data:
            service.update_version(request.user, int(pk), data["version"])
        if "deadline" in data:
            service.update_deadline(request.user, int(pk), data["deadline"])
        if "is_active" in data:
            service.set_active(request.user, int(pk), data["is_active"])
        return Response(serialize_train_view(service.get_train_view(int(pk))))

    def destroy(self, request: Request, pk: str) -> Response:
        ReleaseService().delete_release(request.user, int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="start")
    def start(self, request: Request, pk: str) -> Response:
        """Put the first stop in progress."""

        ProgressionEngine().start_train(request.user, int(pk))
        return Response(serialize_train_view(ReleaseService().get_train_view(int(pk))))

    @action(detail=True, methods=["post"], url_path="advance")
    def advance(self, request: Request, pk: str) -> Response:
        """Complete the current stop and start the next one."""

        result = ProgressionEngine().advance_to_next_stop(request.user, int(pk))
        payload = serialize_train_view(ReleaseService().get_train_view(int(pk)))
        payload["advanced"] = result is not None
        return Response(payload)

    @action(detail=True, methods=["post"], url_path="reset")
    def reset(self, request: Request, pk: str) -> Response:
        ProgressionEngine().reset_train(request.user, int(pk))
        return Response(serialize_train_view(ReleaseService().get_train_view(int(pk))))

    @action(detail=True, methods=["get"], url_path="head")
    def head(self, request: Request, pk: str) -> Response:
        return Response(StopSerializer(ProgressionEngine().head_of(int(pk))).data)

    @action(detail=True, methods=["get"], url_path="analytics")
    def analytics(self, request: Request, pk: str) -> Response:
        view = ReleaseService().get_train_view(int(pk), with_notes=False)
        report = train_analytics(view.stops)
        return Response(TrainAnalyticsSerializer(report).data)

    @action(detail=True, methods=["post"], url_path="stops")
    def stops(self, request: Request, pk: str) -> Response:
        """Add and delete stops, then renumber."""

        serializer = RosterUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        RosterEditor().update_release_stops(
            request.user,
            int(pk),
            to_add=serializer.validated_data["add"],
            to_delete_ids=serializer.validated_data["delete"],
        )
        return Response(serialize_train_view(ReleaseService().get_train_view(int(pk))))


class StopViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9]+"

    def retrieve(self, request: Request, pk: str) -> Response:
        stop = ReleaseService().repository.get_stop(int(pk))
        return Response(StopSerializer(stop).data)

    def partial_update(self, request: Request, pk: str) -> Response:
        serializer = StopDetailsSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        stop = RosterEditor().update_stop_details(
            request.user, int(pk), **serializer.validated_data
        )
        return Response(StopSerializer(stop).data)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request: Request, pk: str) -> Response:
        serializer = StopStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stop = ProgressionEngine().update_stop_status(
            request.user, int(pk), serializer.validated_data["status"]
        )
        return Response(StopSerializer(stop).data)

    @action(detail=True, methods=["get", "post"], url_path="notes")
    def notes(self, request: Request, pk: str) -> Response:
        service = ReleaseService()
        if request.method == "POST":
            serializer = NoteCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            note = service.add_note(request.user, int(pk), serializer.validated_data["text"])
            return Response(NoteSerializer(note).data, status=status.HTTP_201_CREATED)
        return Response(NoteSerializer(service.list_notes(int(pk)), many=True).data)


class NoteViewSet(viewsets.ViewSet):
    lookup_value_regex = "[0-9]+"

    def destroy(self, request: Request, pk: str) -> Response:
        ReleaseService().delete_note(request.user, int(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReleaseViewSet(viewsets.ViewSet):
    """Dashboard listing across every app and platform."""

    def list(self, request: Request) -> Response:
        releases = ReleaseRegistry().list_releases_with_stats()
        return Response(ReleaseSummarySerializer(releases, many=True).data)

    @action(detail=False, methods=["get"], url_path="tracks")
    def tracks(self, request: Request) -> Response:
        tracks = ReleaseRegistry().group_by_track()
        board = build_board(tracks)
        return Response(
            {
                "tracks": TrackSerializer(tracks, many=True).data,
                "current": ReleaseSummarySerializer(board.current, many=True).data,
                "recently_completed": ReleaseSummarySerializer(
                    board.recently_completed, many=True
                ).data,
                "archived": ReleaseSummarySerializer(board.archived, many=True).data,
                "stats": board.stats,
            }
        )


@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):  # type: ignore[override]
    """Readiness endpoint for orchestration tooling."""

    return Response({"status": "ok"})
