"""Step registry for pipeline system."""

from typing import Optional

from scriptflow.pipeline.base import StepDefinition, ALL_CATEGORIES
from scriptflow.utils import ConfigurationError, UnknownStepError


class StepRegistry:
    """Registry of known step types.

    Maintains a mapping of step type ids to their definitions for use by the
    graph exporter, the config loader and the CLI.
    """

    _definitions: dict[str, StepDefinition] = {}
    _discovered: bool = False

    @classmethod
    def register(cls, definition: StepDefinition) -> StepDefinition:
        """Register a step definition.

        Args:
            definition: Step definition to register

        Returns:
            The registered definition

        Raises:
            ConfigurationError: If another definition already uses the id
        """
        cls.discover()
        existing = cls._definitions.get(definition.step_id)
        if existing is not None and existing is not definition:
            raise ConfigurationError(f"Step type already registered: {definition.step_id}")
        cls._definitions[definition.step_id] = definition
        return definition

    @classmethod
    def discover(cls) -> None:
        """Register the built-in step catalogue."""
        if cls._discovered:
            return
        cls._discovered = True

        from scriptflow.pipeline.definitions import STEP_DEFINITIONS
        for definition in STEP_DEFINITIONS:
            cls.register(definition)

    @classmethod
    def get(cls, step_id: str) -> StepDefinition:
        """Get a step definition by id.

        Args:
            step_id: Step type identifier

        Returns:
            StepDefinition

        Raises:
            UnknownStepError: If step type not found
        """
        cls.discover()
        if step_id not in cls._definitions:
            raise UnknownStepError(step_id, cls.list_ids())
        return cls._definitions[step_id]

    @classmethod
    def find(cls, step_id: str) -> Optional[StepDefinition]:
        """Get a step definition by id, or None if unknown."""
        cls.discover()
        return cls._definitions.get(step_id)

    @classmethod
    def list_all(cls) -> list[StepDefinition]:
        """List all registered step definitions in registration order."""
        cls.discover()
        return list(cls._definitions.values())

    @classmethod
    def list_ids(cls) -> list[str]:
        """List all registered step type ids.

        Returns:
            Sorted list of ids
        """
        cls.discover()
        return sorted(cls._definitions.keys())

    @classmethod
    def by_category(cls, category: str) -> list[StepDefinition]:
        """Get step definitions by category.

        Args:
            category: Category name (input, size, effects, composition, ...)

        Returns:
            List of matching definitions
        """
        cls.discover()
        return [d for d in cls._definitions.values() if d.category == category]

    @classmethod
    def categories(cls) -> list[str]:
        """Get all available categories."""
        return ALL_CATEGORIES.copy()

    @classmethod
    def format_list(cls, category: Optional[str] = None) -> str:
        """Format step list for display.

        Args:
            category: Filter by category (None = all)

        Returns:
            Formatted string
        """
        cls.discover()

        if category:
            definitions = cls.by_category(category)
            lines = [f"Steps ({category})", "=" * 50, ""]
        else:
            definitions = cls.list_all()
            lines = ["All Steps", "=" * 50, ""]

        by_cat: dict[str, list[StepDefinition]] = {}
        for d in definitions:
            by_cat.setdefault(d.category, []).append(d)

        for cat in ALL_CATEGORIES:
            if cat not in by_cat:
                continue
            lines.append(f"{cat.upper()}")
            for d in by_cat[cat]:
                lines.append(f"  {d.step_id:<18} {d.name} - {d.description}")
            lines.append("")

        return "\n".join(lines)

    @classmethod
    def format_definition(cls, step_id: str) -> str:
        """Format one step's parameters and outputs for display."""
        definition = cls.get(step_id)
        lines = [f"{definition.step_id} - {definition.name}", "=" * 50, definition.description, ""]

        lines.append("Parameters:")
        for p in definition.parameters:
            flags = []
            if p.required:
                flags.append("required")
            if p.dynamic:
                flags.append(f"dynamic {p.dynamic_pattern or p.name}, max {p.max_dynamic or 'unlimited'}")
            if p.default is not None:
                flags.append(f"default={p.default}")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            lines.append(f"  {p.name:<14} {p.kind.value:<8} {p.description}{suffix}")

        lines.append("")
        lines.append("Outputs:")
        for o in definition.outputs:
            lines.append(f"  {o.name:<14} {o.data_kind}")

        return "\n".join(lines)

    @classmethod
    def clear(cls) -> None:
        """Clear all registered definitions. For testing only."""
        cls._definitions.clear()
        cls._discovered = False
