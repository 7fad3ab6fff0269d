"""hub-render render action."""

import logging
from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
from typing import cast

import aiofiles
import yaml

from hub_render.render import ManifestRenderer

from . import selector

_LOGGER = logging.getLogger(__name__)


class RenderAction:
    """Render the resources installed for an application version."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args: ArgumentParser = cast(
            ArgumentParser,
            subparsers.add_parser(
                "render",
                help="Render the resources of an application version",
                description=(
                    "The render command validates the inputs, coalesces values, "
                    "renders the installation source and prints the resulting "
                    "resources as a YAML stream."
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
        renderer = ManifestRenderer(config=selector.render_config(**kwargs))
        resources = await renderer.compute_resources_for_application(inputs, spec)
        if not resources:
            _LOGGER.warning("Rendering %s produced no resources", inputs.name)
        content = yaml.dump_all(
            [resource.obj for resource in resources],
            sort_keys=False,
            explicit_start=True,
        )
        async with aiofiles.open(output_file, mode="w") as output:
            await output.write(content)
