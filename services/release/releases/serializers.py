"""Serializers for release train entities."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import serializers

from .analytics import format_minutes
from .models import App, Note, ReleaseTrain, Stop
from .transitions import normalize_status


class AppSerializer(serializers.ModelSerializer):
    class Meta:
        model = App
        fields = [
            "id",
            "name",
            "description",
            "created_at",
            "updated_at",
        ]


class NoteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Note
        fields = [
            "id",
            "stop",
            "author_id",
            "author_name",
            "text",
            "created_at",
        ]
        read_only_fields = fields


class StopSerializer(serializers.ModelSerializer):
    class Meta:
        model = Stop
        fields = [
            "id",
            "release_train",
            "number",
            "title",
            "description",
            "owner_type",
            "owner_name",
            "status",
            "started_at",
            "completed_at",
            "updated_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class StopWithNotesSerializer(StopSerializer):
    notes = serializers.SerializerMethodField()

    class Meta(StopSerializer.Meta):
        fields = StopSerializer.Meta.fields + ["notes"]
        read_only_fields = fields

    def get_notes(self, stop: Stop):
        notes = self.context.get("notes", {}).get(stop.pk, [])
        return NoteSerializer(notes, many=True).data


class ReleaseTrainSerializer(serializers.ModelSerializer):
    app_name = serializers.CharField(source="app.name", read_only=True)

    class Meta:
        model = ReleaseTrain
        fields = [
            "id",
            "app",
            "app_name",
            "platform",
            "version",
            "is_active",
            "deadline",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


def _progress_payload(view) -> Dict[str, Any]:
    progress = view.progress
    return {
        "total": progress.total,
        "completed": progress.completed,
        "in_progress": progress.in_progress,
        "blocked": progress.blocked,
        "percent": progress.percent,
    }


def _deadline_payload(view) -> Optional[Dict[str, Any]]:
    state = view.deadline_state
    if state is None:
        return None
    return {"state": state.state, "days_left": state.days_left}


def serialize_train_view(view, include_notes: bool = False) -> Dict[str, Any]:
    """Train payload with its stops and derived facts."""

    data = dict(ReleaseTrainSerializer(view.train).data)
    stop_serializer = StopWithNotesSerializer if include_notes else StopSerializer
    data["stops"] = stop_serializer(view.stops, many=True, context={"notes": view.notes}).data
    data["progress"] = _progress_payload(view)
    data["derived_status"] = view.progress.status
    data["is_complete"] = view.progress.is_complete
    current = view.current_stop
    head = view.head_stop
    data["current_stop"] = StopSerializer(current).data if current else None
    data["head_stop"] = StopSerializer(head).data if head else None
    data["deadline_state"] = _deadline_payload(view)
    return data


class StopStatusField(serializers.CharField):
    """Accepts ``in_progress`` as well as ``in-progress`` or ``In Progress``."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return normalize_status(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc)) from exc


class StopStatusUpdateSerializer(serializers.Serializer):
    status = StopStatusField()


class StopSpecSerializer(serializers.Serializer):
    number = serializers.IntegerField(required=False, min_value=1)
    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    owner_type = serializers.ChoiceField(choices=Stop.OWNER_TYPES, default=Stop.PERSON)
    owner_name = serializers.CharField(max_length=255)
    enabled = serializers.BooleanField(required=False, default=True)


class StopDetailsSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    owner_type = serializers.ChoiceField(choices=Stop.OWNER_TYPES, required=False)
    owner_name = serializers.CharField(max_length=255, required=False)


class TrainCreateSerializer(serializers.Serializer):
    app_id = serializers.IntegerField()
    platform = serializers.ChoiceField(choices=ReleaseTrain.PLATFORM_CHOICES)
    version = serializers.CharField(max_length=64)
    deadline = serializers.DateField(required=False, allow_null=True, default=None)
    stops = StopSpecSerializer(many=True, required=False, allow_null=True, default=None)


class TrainUpdateSerializer(serializers.Serializer):
    version = serializers.CharField(max_length=64, required=False)
    deadline = serializers.DateField(required=False, allow_null=True)
    is_active = serializers.BooleanField(required=False)


class RosterUpdateSerializer(serializers.Serializer):
    add = StopSpecSerializer(many=True, required=False, default=list)
    delete = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, default=list
    )


class NoteCreateSerializer(serializers.Serializer):
    text = serializers.CharField()


class ReleaseSummarySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    app_id = serializers.IntegerField()
    app_name = serializers.CharField()
    platform = serializers.CharField()
    version = serializers.CharField()
    is_active = serializers.BooleanField()
    deadline = serializers.DateField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()
    total_stops = serializers.IntegerField()
    completed_stops = serializers.IntegerField()
    in_progress_stops = serializers.IntegerField()
    blocked_stops = serializers.IntegerField()
    current_stop_title = serializers.CharField(allow_null=True)
    is_complete = serializers.BooleanField()
    progress_percent = serializers.FloatField()


class TrackSerializer(serializers.Serializer):
    app_id = serializers.IntegerField()
    app_name = serializers.CharField()
    platform = serializers.CharField()
    current = ReleaseSummarySerializer(allow_null=True)
    recently_completed = ReleaseSummarySerializer(allow_null=True)
    archived = ReleaseSummarySerializer(many=True)


class StopDurationSerializer(serializers.Serializer):
    number = serializers.IntegerField()
    title = serializers.CharField()
    status = serializers.CharField()
    started_at = serializers.DateTimeField(allow_null=True)
    completed_at = serializers.DateTimeField(allow_null=True)
    minutes = serializers.IntegerField(allow_null=True)
    running = serializers.BooleanField()
    label = serializers.SerializerMethodField()

    def get_label(self, duration) -> str:
        return format_minutes(duration.minutes)


class TrainAnalyticsSerializer(serializers.Serializer):
    started_at = serializers.DateTimeField(allow_null=True)
    total_minutes = serializers.IntegerField(allow_null=True)
    completed_stops = serializers.IntegerField()
    average_stop_minutes = serializers.IntegerField(allow_null=True)
    stops = StopDurationSerializer(many=True)
    total_label = serializers.SerializerMethodField()
    average_label = serializers.SerializerMethodField()

    def get_total_label(self, report) -> str:
        return format_minutes(report.total_minutes)

    def get_average_label(self, report) -> str:
        return format_minutes(report.average_stop_minutes)
