"""
Tests for assembling catalogs from directive streams.
"""

from pathlib import Path

import pytest
from command_chain import (
    Assembler,
    BeginCatalog,
    BeginChain,
    Chain,
    Context,
    CopyCommand,
    DefineCommand,
    DocumentParser,
    EndCatalog,
    EndChain,
    LookupCommand,
    SetProperty,
)
from command_chain.exceptions import ConfigurationError

from configs import reference_directives
from doubles import (
    AddingCommand,
    ConfigurableCommand,
    DelegatingCommand,
    DelegatingFilter,
    ExampleChain,
    ExceptionCommand,
    ExceptionFilter,
    NonDelegatingCommand,
    NonDelegatingFilter,
)

CONFIG_PATH = Path(__file__).parent / "data" / "test-config.json"


def load_directives():
    return reference_directives()


def load_document():
    return DocumentParser.from_json(CONFIG_PATH.read_text(), "test-config.json")


@pytest.fixture
def context():
    return Context()


@pytest.fixture
def assembler(factory, registry):
    return Assembler(factory, registry)


@pytest.fixture(params=[load_directives, load_document], ids=["directives", "document"])
def catalog(request, assembler, factory):
    """Catalog 'foo' assembled from each equivalent configuration."""
    assembler.assemble(request.param())
    return factory.get_catalog("foo")


def check_log(context, expected):
    assert context.get("log") == expected


class TestReferenceConfiguration:
    """The reference configuration, loaded from directives and from JSON."""

    def test_command_count(self, catalog):
        names = list(catalog.names())

        assert len(names) == 17
        for name in names:
            assert catalog.lookup(name) is not None

    def test_single_instances(self, catalog):
        assert isinstance(catalog.lookup("AddingCommand"), AddingCommand)
        assert isinstance(catalog.lookup("DelegatingCommand"), DelegatingCommand)
        assert isinstance(catalog.lookup("DelegatingFilter"), DelegatingFilter)
        assert isinstance(catalog.lookup("ExceptionCommand"), ExceptionCommand)
        assert isinstance(catalog.lookup("ExceptionFilter"), ExceptionFilter)
        assert isinstance(catalog.lookup("NonDelegatingCommand"), NonDelegatingCommand)
        assert isinstance(catalog.lookup("NonDelegatingFilter"), NonDelegatingFilter)

    def test_chain_subclass(self, catalog):
        chain = catalog.lookup("ChainBase")

        assert isinstance(chain, ExampleChain)
        assert chain.commands == ()

    def test_configurable_properties(self, catalog):
        command = catalog.lookup("Configurable")

        assert isinstance(command, ConfigurableCommand)
        assert command.foo == "Foo Value"
        assert command.bar == "Bar Value"

    def test_names_are_command_ids(self, catalog):
        assert catalog.lookup("Execute2a").name == "Execute2a"

    def test_execute_2a(self, catalog, context):
        assert catalog.lookup("Execute2a").execute(context) is True
        check_log(context, "1/2/3")

    def test_execute_2b(self, catalog, context):
        assert catalog.lookup("Execute2b").execute(context) is False
        check_log(context, "1/2/3")

    def test_execute_2c(self, catalog, context):
        with pytest.raises(ArithmeticError) as exc_info:
            catalog.lookup("Execute2c").execute(context)

        assert str(exc_info.value) == "3"
        check_log(context, "1/2/3")

    def test_execute_2d(self, catalog, context):
        with pytest.raises(ArithmeticError) as exc_info:
            catalog.lookup("Execute2d").execute(context)

        assert str(exc_info.value) == "2"
        check_log(context, "1/2")

    def test_execute_4a(self, catalog, context):
        assert catalog.lookup("Execute4a").execute(context) is True
        check_log(context, "1/2/3/c/a")

    def test_execute_4b(self, catalog, context):
        assert catalog.lookup("Execute4b").execute(context) is False
        check_log(context, "1/2/3/b")

    def test_execute_4c(self, catalog, context):
        with pytest.raises(ArithmeticError) as exc_info:
            catalog.lookup("Execute4c").execute(context)

        assert str(exc_info.value) == "3"
        check_log(context, "1/2/3/c/b/a")

    def test_execute_4d(self, catalog, context):
        with pytest.raises(ArithmeticError) as exc_info:
            catalog.lookup("Execute4d").execute(context)

        assert str(exc_info.value) == "2"
        check_log(context, "1/2/b/a")

    def test_nested_elements_are_not_registered(self, catalog):
        members = catalog.lookup("Execute2a").commands

        assert len(members) == 3
        assert all(member not in [catalog.lookup(n) for n in catalog.names()] for member in members)


class TestPristine:
    """Tests for an assembler that has not run yet."""

    def test_no_preconfigured_commands(self, factory, registry):
        Assembler(factory, registry)

        assert list(factory.get_catalog("foo").names()) == []

    def test_uses_global_registry_by_default(self, factory):
        from command_chain import get_registry

        assert Assembler(factory).registry is get_registry()


class TestStructure:
    """Tests for nesting, defaults and accumulation."""

    def test_default_catalog_outside_begin_catalog(self, assembler, factory):
        assembler.assemble([DefineCommand(id="copy", implementation_ref="copy", properties={"to_key": "x"})])

        assert isinstance(factory.get_catalog().lookup("copy"), CopyCommand)

    def test_blank_catalog_name_is_default(self, assembler, factory):
        assembler.assemble(
            [
                BeginCatalog(""),
                DefineCommand(id="copy", implementation_ref="copy", properties={"to_key": "x"}),
                EndCatalog(),
            ]
        )

        assert factory.get_catalog().has_command("copy")

    def test_nested_chain_membership(self, assembler, factory, context):
        assembler.assemble(
            [
                BeginChain(id="Execute4a"),
                DefineCommand(implementation_ref="delegating", properties={"label": "1"}),
                DefineCommand(implementation_ref="delegating", properties={"label": "2"}),
                DefineCommand(implementation_ref="delegating", properties={"label": "3"}),
                BeginChain(id="inner"),
                DefineCommand(implementation_ref="delegating", properties={"label": "c"}),
                DefineCommand(implementation_ref="non_delegating", properties={"label": "a"}),
                EndChain(),
                DefineCommand(implementation_ref="delegating", properties={"label": "never"}),
                EndChain(),
            ]
        )

        catalog = factory.get_catalog()
        outer = catalog.lookup("Execute4a")

        assert list(catalog.names()) == ["Execute4a"]
        assert isinstance(outer.commands[3], Chain)
        assert outer.commands[3].name == "inner"
        assert outer.execute(context) is True
        check_log(context, "1/2/3/c/a")

    def test_runs_accumulate(self, assembler, factory):
        assembler.assemble([DefineCommand(id="one", implementation_ref="delegating")])
        assembler.assemble([DefineCommand(id="two", implementation_ref="delegating")])

        assert list(factory.get_catalog().names()) == ["one", "two"]

    def test_multiple_catalogs(self, assembler, factory):
        assembler.assemble(
            [
                BeginCatalog("foo"),
                DefineCommand(id="one", implementation_ref="delegating"),
                EndCatalog(),
                BeginCatalog("bar"),
                DefineCommand(id="one", implementation_ref="non_delegating"),
                EndCatalog(),
            ]
        )

        assert isinstance(factory.get_command("foo.one"), DelegatingCommand)
        assert isinstance(factory.get_command("bar.one"), NonDelegatingCommand)

    def test_set_property_on_chain(self, assembler, factory):
        assembler.assemble(
            [
                BeginChain(id="owned", implementation_ref="example_chain"),
                SetProperty("owner", "platform"),
                EndChain(),
            ]
        )

        assert factory.get_catalog().lookup("owned").config == {"owner": "platform"}

    def test_set_property_after_end_chain_targets_closed_chain(self, assembler, factory):
        assembler.assemble(
            [
                BeginChain(id="owned", implementation_ref="example_chain", properties={"owner": "a"}),
                DefineCommand(implementation_ref="delegating"),
                EndChain(),
                SetProperty("owner", "b"),
            ]
        )

        assert factory.get_catalog().lookup("owned").config["owner"] == "b"

    def test_typed_properties(self, assembler, factory):
        assembler.assemble(
            [
                DefineCommand(
                    id="typed",
                    implementation_ref="configurable",
                    properties={"foo": "f", "bar": "b", "retries": "3", "enabled": "false"},
                )
            ]
        )

        command = factory.get_catalog().lookup("typed")
        assert command.config["retries"] == 3
        assert command.config["enabled"] is False

    def test_import_path_implementation(self, assembler, factory):
        assembler.assemble(
            [
                DefineCommand(
                    id="copy",
                    implementation_ref="command_chain.commands:CopyCommand",
                    properties={"to_key": "x"},
                ),
                BeginChain(id="chain", implementation_ref="command_chain.chain.Chain"),
                EndChain(),
            ]
        )

        assert isinstance(factory.get_catalog().lookup("copy"), CopyCommand)
        assert type(factory.get_catalog().lookup("chain")) is Chain

    def test_replace_mode_overwrites(self, factory, registry):
        Assembler(factory, registry).assemble([DefineCommand(id="one", implementation_ref="delegating")])
        Assembler(factory, registry, replace=True).assemble(
            [DefineCommand(id="one", implementation_ref="non_delegating")]
        )

        assert isinstance(factory.get_catalog().lookup("one"), NonDelegatingCommand)


class TestReferences:
    """Tests for references, including forward references."""

    def test_forward_reference_in_same_stream(self, assembler, factory, context):
        assembler.assemble(
            [
                BeginCatalog("foo"),
                BeginChain(id="main"),
                DefineCommand(implementation_ref="delegating", properties={"label": "1"}),
                DefineCommand(reference="finish"),
                EndChain(),
                DefineCommand(id="finish", implementation_ref="non_delegating", properties={"label": "2"}),
                EndCatalog(),
            ]
        )

        catalog = factory.get_catalog("foo")
        main = catalog.lookup("main")

        assert main.commands[1] is catalog.lookup("finish")
        assert main.execute(context) is True
        check_log(context, "1/2")

    def test_reference_to_chain_defined_later(self, assembler, factory, context):
        assembler.assemble(
            [
                BeginChain(id="outer"),
                DefineCommand(reference="inner"),
                DefineCommand(implementation_ref="delegating", properties={"label": "after"}),
                EndChain(),
                BeginChain(id="inner"),
                DefineCommand(implementation_ref="delegating", properties={"label": "in"}),
                EndChain(),
            ]
        )

        factory.get_catalog().lookup("outer").execute(context)
        check_log(context, "in/after")

    def test_reference_into_other_catalog(self, assembler, factory):
        assembler.assemble(
            [
                BeginCatalog("app"),
                BeginChain(id="main"),
                DefineCommand(reference="shared.cleanup"),
                EndChain(),
                EndCatalog(),
                BeginCatalog("shared"),
                DefineCommand(id="cleanup", implementation_ref="remove", properties={"from_key": "tmp"}),
                EndCatalog(),
            ]
        )

        main = factory.get_command("app.main")
        assert main.commands == (factory.get_command("shared.cleanup"),)

    def test_reference_to_earlier_run(self, assembler, factory):
        assembler.assemble([DefineCommand(id="existing", implementation_ref="delegating")])
        assembler.assemble(
            [BeginChain(id="main"), DefineCommand(reference="existing"), EndChain()]
        )

        catalog = factory.get_catalog()
        assert catalog.lookup("main").commands == (catalog.lookup("existing"),)

    def test_top_level_alias(self, assembler, factory):
        assembler.assemble(
            [
                DefineCommand(id="alias", reference="target"),
                DefineCommand(id="second_alias", reference="alias"),
                DefineCommand(id="target", implementation_ref="delegating"),
            ]
        )

        catalog = factory.get_catalog()
        assert catalog.lookup("alias") is catalog.lookup("target")
        assert catalog.lookup("second_alias") is catalog.lookup("target")

    def test_same_reference_twice_shares_instance(self, assembler, factory):
        assembler.assemble(
            [
                BeginChain(id="twice"),
                DefineCommand(reference="step"),
                DefineCommand(reference="step"),
                EndChain(),
                DefineCommand(id="step", implementation_ref="delegating"),
            ]
        )

        first, second = factory.get_catalog().lookup("twice").commands
        assert first is second

    def test_unresolved_reference_raises(self, assembler):
        with pytest.raises(ConfigurationError, match="Unresolved reference 'missing'"):
            assembler.assemble(
                [BeginChain(id="main"), DefineCommand(reference="missing"), EndChain()]
            )

    def test_unresolved_alias_raises(self, assembler):
        with pytest.raises(ConfigurationError, match="Unresolved reference 'nowhere'"):
            assembler.assemble([DefineCommand(id="alias", reference="nowhere")])


class TestConfigurationErrors:
    """Tests for assembly failures."""

    @pytest.mark.parametrize(
        "directives, message",
        [
            ([EndChain()], "EndChain without a matching BeginChain"),
            ([EndCatalog()], "EndCatalog without a matching BeginCatalog"),
            ([BeginCatalog("a"), BeginCatalog("b")], "Catalogs cannot be nested"),
            ([BeginChain(id="c"), BeginCatalog("a")], "cannot begin inside a chain"),
            ([BeginCatalog("a"), BeginChain(id="c"), EndCatalog()], "still open"),
            ([BeginChain(id="c")], "never closed with EndChain"),
            ([BeginCatalog("a")], "never closed with EndCatalog"),
            ([DefineCommand(implementation_ref="delegating")], "Top-level commands must have an id"),
            ([BeginChain(), EndChain()], "Top-level chains must have an id"),
            ([DefineCommand(id="x")], "needs an implementation or a reference"),
            (
                [DefineCommand(id="x", implementation_ref="delegating", reference="y")],
                "both an implementation and a reference",
            ),
            ([SetProperty("label", "1")], "No element"),
            (
                [
                    BeginChain(id="c"),
                    DefineCommand(reference="c"),
                    SetProperty("label", "1"),
                    EndChain(),
                ],
                "cannot be set on reference",
            ),
            ([DefineCommand(id="x", implementation_ref="nonexistent")], "Unknown command type"),
            ([DefineCommand(id="x", implementation_ref="broken")], "Cannot instantiate"),
            ([BeginChain(id="x", implementation_ref="delegating"), EndChain()], "is not a chain type"),
            ([object()], "Unknown directive"),
        ],
    )
    def test_malformed_streams(self, assembler, directives, message):
        with pytest.raises(ConfigurationError, match=message):
            assembler.assemble(directives)

    def test_unknown_property(self, assembler):
        with pytest.raises(ConfigurationError) as exc_info:
            assembler.assemble(
                [DefineCommand(id="x", implementation_ref="delegating", properties={"colour": "red"})]
            )

        error = exc_info.value
        assert "Unknown property: 'colour'" in error.message
        assert error.command_name == "x"
        assert "label" in error.config_schema["optional"]
        assert error.message.startswith("Directive 0 (DefineCommand)")

    def test_property_of_wrong_shape(self, assembler):
        with pytest.raises(ConfigurationError, match="expected int"):
            assembler.assemble(
                [
                    DefineCommand(
                        id="x",
                        implementation_ref="configurable",
                        properties={"foo": "f", "bar": "b", "retries": "many"},
                    )
                ]
            )

    def test_missing_required_property(self, assembler):
        with pytest.raises(ConfigurationError, match="Missing required config: 'bar'"):
            assembler.assemble(
                [DefineCommand(id="x", implementation_ref="configurable", properties={"foo": "f"})]
            )

    def test_required_property_checked_for_nested_commands(self, assembler):
        with pytest.raises(ConfigurationError, match="to_key"):
            assembler.assemble(
                [BeginChain(id="c"), DefineCommand(implementation_ref="copy"), EndChain()]
            )

    def test_duplicate_id_in_stream(self, assembler):
        with pytest.raises(ConfigurationError, match="already registered"):
            assembler.assemble(
                [
                    DefineCommand(id="x", implementation_ref="delegating"),
                    DefineCommand(id="x", implementation_ref="delegating"),
                ]
            )

    def test_duplicate_id_across_runs(self, assembler):
        assembler.assemble([DefineCommand(id="x", implementation_ref="delegating")])

        with pytest.raises(ConfigurationError, match="already registered"):
            assembler.assemble([DefineCommand(id="x", implementation_ref="delegating")])


class TestRollback:
    """Tests for restoring catalogs after a failed run."""

    def test_new_catalogs_are_removed(self, assembler, factory):
        with pytest.raises(ConfigurationError):
            assembler.assemble(
                [
                    BeginCatalog("fresh"),
                    DefineCommand(id="ok", implementation_ref="delegating"),
                    DefineCommand(id="bad", reference="missing"),
                    EndCatalog(),
                ]
            )

        assert not factory.has_catalog("fresh")

    def test_existing_catalogs_are_restored(self, assembler, factory):
        assembler.assemble([DefineCommand(id="keep", implementation_ref="delegating")])
        kept = factory.get_catalog().lookup("keep")

        with pytest.raises(ConfigurationError):
            assembler.assemble(
                [
                    DefineCommand(id="added", implementation_ref="delegating"),
                    EndChain(),
                ]
            )

        catalog = factory.get_catalog()
        assert list(catalog.names()) == ["keep"]
        assert catalog.lookup("keep") is kept

    def test_replaced_commands_are_restored(self, factory, registry):
        Assembler(factory, registry).assemble([DefineCommand(id="x", implementation_ref="delegating")])
        original = factory.get_catalog().lookup("x")

        with pytest.raises(ConfigurationError):
            Assembler(factory, registry, replace=True).assemble(
                [
                    DefineCommand(id="x", implementation_ref="non_delegating"),
                    DefineCommand(id="y", implementation_ref="nonexistent"),
                ]
            )

        assert factory.get_catalog().lookup("x") is original

    def test_empty_module_path_rolls_back(self, assembler, factory):
        with pytest.raises(ConfigurationError, match="Unknown command type: ':Thing'"):
            assembler.assemble(
                [
                    BeginCatalog("fresh"),
                    DefineCommand(id="ok", implementation_ref="delegating"),
                    DefineCommand(id="bad", implementation_ref=":Thing"),
                    EndCatalog(),
                ]
            )

        assert not factory.has_catalog("fresh")

    def test_non_mapping_properties_roll_back(self, assembler, factory):
        with pytest.raises(ConfigurationError, match="Properties must be a mapping, not list"):
            assembler.assemble(
                [
                    BeginCatalog("fresh"),
                    DefineCommand(id="ok", implementation_ref="delegating"),
                    DefineCommand(id="bad", implementation_ref="delegating", properties=["label"]),
                    EndCatalog(),
                ]
            )

        assert not factory.has_catalog("fresh")

    def test_non_mapping_chain_properties_raise(self, assembler):
        with pytest.raises(ConfigurationError, match="Properties must be a mapping"):
            assembler.assemble([BeginChain(id="c", properties="label"), EndChain()])

    def test_failing_directive_source_rolls_back(self, assembler, factory):
        def directives():
            yield BeginCatalog("fresh")
            yield DefineCommand(id="ok", implementation_ref="delegating")
            raise RuntimeError("source went away")

        with pytest.raises(ConfigurationError, match="Assembly failed: source went away") as exc_info:
            assembler.assemble(directives())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert not factory.has_catalog("fresh")


class TestLookupCommandAssembly:
    """Tests for commands that use the assembler's catalog factory."""

    def test_lookup_delegates_to_catalog_command(self, assembler, factory, context):
        assembler.assemble(
            [
                BeginCatalog("foo"),
                BeginChain(id="main"),
                DefineCommand(
                    implementation_ref="lookup",
                    properties={"catalog": "foo", "command": "target"},
                ),
                EndChain(),
                DefineCommand(id="target", implementation_ref="non_delegating", properties={"label": "t"}),
                EndCatalog(),
            ]
        )

        main = factory.get_command("foo.main")
        lookup = main.commands[0]

        assert isinstance(lookup, LookupCommand)
        assert lookup.catalog_factory is factory
        assert main.execute(context) is True
        check_log(context, "t")
