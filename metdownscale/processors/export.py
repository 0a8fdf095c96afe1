"""
Write one hourly driver CSV per (member, noise member) pair.
"""

import csv
import logging
import os
import tempfile
from typing import Any, Dict

import pandas as pd

from metdownscale.core.config import RunConfig
from metdownscale.core.constants import (
    ASSEMBLED,
    EMITTED_FILES,
    MEMBER_DIM,
    NOISE_DIM,
    OUTPUT_NA_REP,
    OUTPUT_TIME_FORMAT,
)
from metdownscale.core.paths import MET_FILE_TEMPLATE
from metdownscale.processors.abc_data_processor import (
    DataProcessor,
    Tables,
    register_processor,
)
from metdownscale.processors.assemble import pair_table

# Module logger
logger = logging.getLogger(__name__)


def met_file_name(file_name: str, member: int, noise_member: int) -> str:
    """Driver file name of one pair.

    >>> met_file_name("20180705gep_all_00z", 3, 0)
    'met_hourly_20180705gep_all_00z_NOAA3_ds0.csv'
    """
    return MET_FILE_TEMPLATE.format(
        file_name=file_name, member=int(member), noise_member=int(noise_member)
    )


def write_table(df: pd.DataFrame, path: str) -> str:
    """Atomically write a driver table as CSV.

    The table is written to a temporary file in the target folder and moved
    into place, so a failed write never leaves a partial file at ``path``.

    Parameters
    ----------
    df : pd.DataFrame
        Rows of one pair, see :func:`~metdownscale.processors.assemble.pair_table`.
    path : str
        Destination file.

    Returns
    -------
    str
        ``path``.

    """
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(
        dir=directory, prefix=".tmp_", suffix=".csv"
    )
    try:
        with os.fdopen(fd, "w", newline="") as f:
            df.to_csv(
                f,
                index=False,
                na_rep=OUTPUT_NA_REP,
                quoting=csv.QUOTE_NONE,
                date_format=OUTPUT_TIME_FORMAT,
            )
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
    return path


@register_processor("export", priority=9999)
class Export(DataProcessor):
    """
    Emit the combined table as one driver file per pair.

    The base name of every file comes from ``context["file_name"]`` (the
    forecast file name, e.g. ``20180705gep_all_00z``) and files are written to
    ``config.out_directory``.

    Methods
    -------
    execute(result, context)
        Write the files and add their paths to the pipeline state.

    """

    def __init__(self, config: RunConfig):
        super().__init__(config)
        self.name = "export"
        if not config.out_directory:
            raise ValueError("Export needs an output directory.")

    def execute(self, result: Tables, context: Dict[str, Any]) -> Tables:
        assembled = self._require(result, ASSEMBLED, self.name)
        if "file_name" not in context:
            raise KeyError("Export needs 'file_name' in the context.")
        os.makedirs(self.config.out_directory, exist_ok=True)

        paths = []
        for member in assembled[MEMBER_DIM].values:
            for noise_member in assembled[NOISE_DIM].values:
                path = os.path.join(
                    self.config.out_directory,
                    met_file_name(context["file_name"], member, noise_member),
                )
                write_table(pair_table(assembled, member, noise_member), path)
                paths.append(path)

        logger.info("Wrote %d driver file(s) to %s", len(paths), self.config.out_directory)
        self.update_context(context)
        return {**result, EMITTED_FILES: paths}
