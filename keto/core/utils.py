import logging

from keto.core.config import DEBUG


def setup_logger(logger_name: str) -> logging.Logger:
    level = logging.DEBUG if DEBUG else logging.INFO

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                  datefmt='%d-%b-%y %H:%M:%S')
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level=level)
    console_handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(console_handler)

    return logger


def parse_labels(items: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings into a label mapping."""
    labels = {}

    for item in items:
        key, sep, value = item.partition('=')
        key = key.strip()

        if not sep or not key:
            raise ValueError(f"Invalid label '{item}', expected key=value format")

        labels[key] = value.strip()

    return labels


def parse_taints(items: list[str], default_effect: str = 'NoSchedule') -> dict[str, tuple[str, str]]:
    """Parse ``key=value:Effect`` strings into a taint mapping.

    The effect part is optional and falls back to ``default_effect``.
    """
    taints = {}

    for item in items:
        key, sep, rest = item.partition('=')
        key = key.strip()

        if not sep or not key:
            raise ValueError(f"Invalid taint '{item}', expected key=value[:effect] format")

        value, _, effect = rest.partition(':')
        taints[key] = (value.strip(), effect.strip() or default_effect)

    return taints
