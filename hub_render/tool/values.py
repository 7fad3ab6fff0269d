"""hub-render values action."""

import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast

import aiofiles

from hub_render.template import exec_input_values_templates
from hub_render.validation import validate_inputs
from hub_render.values import compute_value_overrides

from . import selector

_LOGGER = logging.getLogger(__name__)


class ValuesAction:
    """Print the coalesced values document for an application version."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args: ArgumentParser = cast(
            ArgumentParser,
            subparsers.add_parser(
                "values",
                help="Print the values document used to render a chart",
                description=(
                    "The values command validates the inputs and prints the "
                    "spec, layer, parameter and user values merged into the "
                    "single document passed to chart rendering."
                ),
            ),
        )
        args.add_argument(
            "--output-file",
            type=str,
            default="/dev/stdout",
            help="Output file for the results of the command",
        )
        selector.add_selection_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        output_file: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        inputs, spec = await selector.build_inputs(**kwargs)
        validate_inputs(inputs, spec)
        values = compute_value_overrides(exec_input_values_templates(inputs))
        async with aiofiles.open(output_file, mode="w") as output:
            await output.write(values)
