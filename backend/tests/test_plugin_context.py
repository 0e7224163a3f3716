"""Tests for LocalPluginContext."""

from unittest.mock import patch

import pytest

from recordplug.business.leave import LeaveRequest
from recordplug.core.errors import PluginConfigurationError
from recordplug.core.types import ColumnSet, Entity, EntityReference
from recordplug.persistence.sqlite import SQLiteOrganizationService, SQLiteServiceFactory, connect
from recordplug.plugins import (
    ExecutionContext,
    LocalPluginContext,
    LoggingTracingService,
    OrganizationServiceContext,
    ServiceProvider,
    Stage,
)


@pytest.fixture
def factory():
    conn = connect(":memory:")
    yield SQLiteServiceFactory(conn)
    conn.close()


@pytest.fixture
def tracing():
    return LoggingTracingService()


def make_provider(factory, tracing=None, target=None, pre_images=None, post_images=None):
    parameters = {"Target": target} if target is not None else {}
    return ServiceProvider(
        execution_context=ExecutionContext(
            stage=int(Stage.PRE_OPERATION),
            message_name="Update",
            primary_entity_name="new_leaverequests",
            depth=2,
            correlation_id="corr-42",
            initiating_user_id="U-init",
            user_id="U-step",
            input_parameters=parameters,
            pre_entity_images=pre_images or {},
            post_entity_images=post_images or {},
        ),
        service_factory=factory,
        tracing_service=tracing,
    )


class CountingSession(OrganizationServiceContext):
    releases = 0

    def close(self):
        if not self.closed:
            CountingSession.releases += 1
        super().close()


# =============================================================================
# Construction
# =============================================================================


class TestContextConstruction:
    def test_none_provider_raises(self):
        with pytest.raises(PluginConfigurationError):
            LocalPluginContext(None)

    def test_resolves_services(self, factory, tracing):
        provider = make_provider(factory, tracing)

        with LocalPluginContext(provider) as ctx:
            assert ctx.tracing_service is tracing
            assert ctx.execution_context is provider.execution_context
            assert ctx.service_factory is factory
            assert isinstance(ctx.organization_service, SQLiteOrganizationService)
            assert ctx.organization_service.user_id == "U-step"

    def test_pass_through_properties(self, factory):
        with LocalPluginContext(make_provider(factory)) as ctx:
            assert ctx.stage is Stage.PRE_OPERATION
            assert ctx.depth == 2
            assert ctx.message_name == "Update"
            assert ctx.primary_entity_name == "new_leaverequests"


# =============================================================================
# Target
# =============================================================================


class TestTarget:
    def test_target_is_same_instance(self, factory):
        target = Entity("new_leaverequests", "LR1", {"new_numberofdays": 3})

        with LocalPluginContext(make_provider(factory, target=target)) as ctx:
            assert ctx.target_entity is target
            assert ctx.target_entity is ctx.target_entity

    def test_target_mutation_is_visible(self, factory):
        target = Entity("new_leaverequests", "LR1", {"new_numberofdays": 3})
        provider = make_provider(factory, target=target)

        with LocalPluginContext(provider) as ctx:
            ctx.target_entity["new_numberofdays"] = 5
            assert ctx.target_entity["new_numberofdays"] == 5

        assert provider.execution_context.input_parameters["Target"]["new_numberofdays"] == 5

    def test_target_is_not_projected(self, factory):
        target = Entity("new_leaverequests", "LR1")

        with LocalPluginContext(make_provider(factory, target=target), LeaveRequest) as ctx:
            assert type(ctx.target_entity) is Entity

    def test_no_target(self, factory):
        with LocalPluginContext(make_provider(factory)) as ctx:
            assert ctx.target_entity is None
            assert ctx.target_entity_reference is None

    def test_reference_target(self, factory):
        reference = EntityReference("new_leaverequests", "LR1")

        with LocalPluginContext(make_provider(factory, target=reference)) as ctx:
            assert ctx.target_entity is None
            assert ctx.target_entity_reference is reference


# =============================================================================
# Images
# =============================================================================


class TestImages:
    def test_no_images(self, factory):
        with LocalPluginContext(make_provider(factory)) as ctx:
            assert ctx.pre_image is None
            assert ctx.post_image is None

    def test_first_image_is_returned(self, factory):
        first = Entity("new_leaverequests", "LR1", {"new_numberofdays": 1})
        second = Entity("new_leaverequests", "LR1", {"new_numberofdays": 2})
        provider = make_provider(
            factory,
            pre_images={"PreImage": first, "Other": second},
            post_images={"PostImage": second},
        )

        with LocalPluginContext(provider) as ctx:
            assert ctx.pre_image is first
            assert ctx.post_image is second

    def test_image_projected_to_entity_class(self, factory):
        image = Entity("new_leaverequests", "LR1", {"new_numberofdays": 4})

        with LocalPluginContext(make_provider(factory, pre_images={"Pre": image}), LeaveRequest) as ctx:
            pre = ctx.pre_image
            assert isinstance(pre, LeaveRequest)
            assert pre.id == "LR1"
            assert pre.number_of_days == 4


# =============================================================================
# Tracing
# =============================================================================


class TestContextTrace:
    def test_trace_appends_correlation_and_user(self, factory, tracing):
        with LocalPluginContext(make_provider(factory, tracing)) as ctx:
            ctx.trace("checking balance")

        assert tracing.lines == [
            "checking balance, Correlation Id: corr-42, Initiating User: U-init"
        ]

    @pytest.mark.parametrize("message", ["", "   ", None])
    def test_blank_message_is_ignored(self, factory, tracing, message):
        with LocalPluginContext(make_provider(factory, tracing)) as ctx:
            ctx.trace(message)

        assert tracing.lines == []

    def test_no_tracing_service_is_noop(self, factory):
        with LocalPluginContext(make_provider(factory, None)) as ctx:
            ctx.trace("nobody listening")


# =============================================================================
# Session lifetime
# =============================================================================


class TestSessionRelease:
    def test_released_once_on_success(self, factory):
        CountingSession.releases = 0
        with patch("recordplug.plugins.context.OrganizationServiceContext", CountingSession):
            with LocalPluginContext(make_provider(factory)) as ctx:
                assert not ctx.session.closed
            ctx.close()

        assert ctx.session.closed
        assert CountingSession.releases == 1

    def test_released_once_on_exception(self, factory):
        CountingSession.releases = 0
        with patch("recordplug.plugins.context.OrganizationServiceContext", CountingSession):
            with pytest.raises(ValueError):
                with LocalPluginContext(make_provider(factory)) as ctx:
                    raise ValueError("handler failed")

        assert ctx.session.closed
        assert CountingSession.releases == 1

    def test_closed_session_rejects_use(self, factory):
        with LocalPluginContext(make_provider(factory)) as ctx:
            pass

        with pytest.raises(RuntimeError, match="closed"):
            ctx.session.save_changes()

    def test_unsaved_changes_are_discarded(self, factory, caplog):
        service = factory.create_organization_service("U1")
        service.create(Entity("account", "A1", {"name": "Old"}))

        with LocalPluginContext(make_provider(factory)) as ctx:
            ctx.session.update_object(Entity("account", "A1", {"name": "New"}))

        assert service.retrieve("account", "A1", ColumnSet.all()).get("name") == "Old"
        assert "unsaved" in caplog.text
