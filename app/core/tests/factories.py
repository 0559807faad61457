"""
Factory Boy factories shared across apps.

Usage:
    from core.tests.factories import UserFactory

    user = UserFactory()
    admin = UserFactory(is_staff=True)
"""

import factory
from django.contrib.auth import get_user_model


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for the project's user model.

    Examples:
        user = UserFactory()
        staff = UserFactory(is_staff=True)
    """

    class Meta:
        model = get_user_model()
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    is_active = True
    is_staff = False

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Override create to use the manager's create_user()."""
        password = kwargs.pop("password", "TestPass123!")
        return model_class.objects.create_user(password=password, *args, **kwargs)
