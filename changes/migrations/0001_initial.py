# Generated manually for initial schema.
from __future__ import annotations

import uuid

from django.db import migrations, models
import django.db.models.deletion


def _user_fk(related_name: str) -> models.ForeignKey:
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name=related_name,
        to="accounts.user",
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("cmdb", "0001_initial"),
        ("problems", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Change",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField()),
                (
                    "type",
                    models.CharField(
                        choices=[("standard", "Standard"), ("normal", "Normal"), ("emergency", "Emergency")],
                        default="normal",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("requested", "Requested"),
                            ("approved", "Approved"),
                            ("in-progress", "In Progress"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="requested",
                        max_length=32,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High"), ("critical", "Critical")],
                        default="medium",
                        max_length=16,
                    ),
                ),
                (
                    "risk",
                    models.CharField(
                        choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")],
                        default="medium",
                        max_length=16,
                    ),
                ),
                ("impact", models.TextField(blank=True, default="")),
                ("backout_plan", models.TextField(blank=True, default="")),
                ("scheduled_start", models.DateTimeField(blank=True, null=True)),
                ("scheduled_end", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("requested_by", _user_fk("requested_changes")),
                ("approved_by", _user_fk("approved_changes")),
                ("assigned_approver", _user_fk("changes_to_approve")),
            ],
            options={
                "ordering": ["-created_at", "id"],
                "indexes": [models.Index(fields=["status"], name="change_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="ChangeConfigurationItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "change",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ci_links",
                        to="changes.change",
                    ),
                ),
                (
                    "configuration_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="change_links",
                        to="cmdb.configurationitem",
                    ),
                ),
            ],
            options={"unique_together": {("change", "configuration_item")}},
        ),
        migrations.CreateModel(
            name="ChangeProblem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "change",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="problem_links",
                        to="changes.change",
                    ),
                ),
                (
                    "problem",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="change_links",
                        to="problems.problem",
                    ),
                ),
            ],
            options={"unique_together": {("change", "problem")}},
        ),
        migrations.AddField(
            model_name="change",
            name="configuration_items",
            field=models.ManyToManyField(
                blank=True,
                related_name="changes",
                through="changes.ChangeConfigurationItem",
                to="cmdb.configurationitem",
            ),
        ),
        migrations.AddField(
            model_name="change",
            name="problems",
            field=models.ManyToManyField(
                blank=True,
                related_name="changes",
                through="changes.ChangeProblem",
                to="problems.problem",
            ),
        ),
    ]
