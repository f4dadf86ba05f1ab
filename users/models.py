import uuid

from django.db import models


class User(models.Model):
    class Roles(models.TextChoices):
        ADMIN = "ADMIN", "Admin"
        ENDUSER = "ENDUSER", "End user"
        DRONE = "DRONE", "Drone"

    # Role fields define permissions in the app
    # ENDUSER: Can submit, withdraw and track their own orders
    # DRONE: Can reserve jobs and carry orders through delivery
    # ADMIN: Can edit routes, list everything and manage the fleet
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    role = models.CharField(max_length=20, choices=Roles.choices, default=Roles.ENDUSER)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} ({self.get_role_display()})"
