import pytest
from django.test import SimpleTestCase, TransactionTestCase


@pytest.fixture(autouse=True)
def _allow_connection_housekeeping_in_simple_tests(request, django_db_blocker):
    # Under pytest-django, DB-backed TestCases run first and leave the in-memory
    # sqlite connection open; channels' database_sync_to_async then calls
    # close_old_connections(), which pytest-django's blocker rejects. Django's
    # own runner permits this, so mirror that for SimpleTestCase tests.
    instance = getattr(request, "instance", None)
    if isinstance(instance, SimpleTestCase) and not isinstance(instance, TransactionTestCase):
        with django_db_blocker.unblock():
            yield
    else:
        yield
