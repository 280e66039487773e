"""Database models for the release train service."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db import models
from django.utils import timezone


class App(models.Model):
    """A mobile app whose releases are tracked."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class ReleaseTrain(models.Model):
    """One versioned release workflow for an (app, platform) track."""

    IOS = "ios"
    ANDROID = "android"

    PLATFORM_CHOICES = [
        (IOS, "iOS"),
        (ANDROID, "Android"),
    ]

    app = models.ForeignKey(App, related_name="trains", on_delete=models.CASCADE)
    platform = models.CharField(max_length=16, choices=PLATFORM_CHOICES)
    version = models.CharField(max_length=64)
    is_active = models.BooleanField(default=True)
    deadline = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["app", "platform", "version"],
                name="unique_train_per_track_version",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.app_id}/{self.platform} {self.version}"


class Stop(models.Model):
    """A numbered checkpoint inside a release train."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    BLOCKED = "blocked"

    STATUS_CHOICES = [
        (NOT_STARTED, "Not Started"),
        (IN_PROGRESS, "In Progress"),
        (DONE, "Done"),
        (BLOCKED, "Blocked"),
    ]

    ACTIVE_STATUSES = frozenset({IN_PROGRESS, BLOCKED})

    PERSON = "person"
    AUTOMATION = "automation"

    OWNER_TYPES = [
        (PERSON, "Person"),
        (AUTOMATION, "Automation"),
    ]

    release_train = models.ForeignKey(ReleaseTrain, related_name="stops", on_delete=models.CASCADE)
    number = models.PositiveIntegerField()
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    owner_type = models.CharField(max_length=16, choices=OWNER_TYPES, default=PERSON)
    owner_name = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=NOT_STARTED)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_by = models.CharField(max_length=64, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    STATUS_FIELDS = ["status", "started_at", "completed_at", "updated_by", "updated_at"]

    class Meta:
        ordering = ["number", "id"]
        indexes = [
            models.Index(fields=["release_train", "number"], name="stop_train_number_idx"),
            models.Index(fields=["status"], name="stop_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.number}. {self.title} ({self.status})"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def apply_status(
        self, new_status: str, actor_id: Optional[str], now: Optional[datetime] = None
    ) -> "Stop":
        """Set ``new_status`` and stamp timestamps; does not save.

        Accepts any status pair. Callers that need the single active stop
        guarantee go through the progression engine.
        """

        now = now or timezone.now()
        if new_status == self.IN_PROGRESS:
            if self.started_at is None:
                self.started_at = now
            self.completed_at = None
        elif new_status == self.DONE:
            self.completed_at = now
        self.status = new_status
        self.updated_by = actor_id
        return self

    def clear_progress(self, actor_id: Optional[str]) -> "Stop":
        self.status = self.NOT_STARTED
        self.started_at = None
        self.completed_at = None
        self.updated_by = actor_id
        return self


class Note(models.Model):
    """Free-text remark left on a stop. Append-only."""

    stop = models.ForeignKey(Stop, related_name="notes", on_delete=models.CASCADE)
    author_id = models.CharField(max_length=64)
    author_name = models.CharField(max_length=255)
    text = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.author_name}: {self.text[:40]}"
