from typing import TypeVar

from pydantic import BaseModel

OptionsT = TypeVar("OptionsT", bound=BaseModel)


def merged_options(default_options: OptionsT, options: OptionsT | None) -> OptionsT:
    """Overlay the fields set in `options` on `default_options`.

    Fields left to None in `options` keep the default.

    Args:
        default_options (OptionsT): The defaults, left untouched.
        options (OptionsT | None): The options to apply.

    Returns:
        OptionsT: A new options object.

    Raises:
        TypeError: If `options` is not of the type of `default_options`.
    """
    if options is None:
        return default_options.model_copy()
    if not isinstance(options, type(default_options)):
        raise TypeError(  # noqa: TRY003
            f"Cannot merge {type(options).__name__} into {type(default_options).__name__}"
        )
    return default_options.model_copy(update=options.model_dump(exclude_none=True))
