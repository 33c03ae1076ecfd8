"""
Output persistence utilities.

Provides the on-disk ``ResultWriter`` that stores each model's output as
a markdown file named after the model.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ..utils.logging import get_logger
from ..utils.paths import ensure_within, sanitize_filename

logger = get_logger(__name__)


def save_output_md(path: Path | str, content: str) -> None:
	"""
	Persist markdown content to disk, ensuring parent directories.

	Parameters:
		path: Destination file path.
		content: Markdown content to write.
	"""
	Path(path).parent.mkdir(parents=True, exist_ok=True)
	Path(path).write_text(content, encoding="utf-8")


class FileResultWriter:
	"""
	Writes ``<output_dir>/<sanitized model name>.md``.

	Writes run in a worker thread so the event loop keeps serving other
	model tasks.
	"""

	def __init__(self, output_dir: Path | str) -> None:
		self.output_dir = Path(output_dir)

	def path_for(self, model_name: str) -> Path:
		"""
		Output file for a model.

		Raises:
			ValueError: If the name cannot be turned into a path inside
				the output directory.
		"""
		path = self.output_dir / f"{sanitize_filename(model_name)}.md"
		return ensure_within(self.output_dir, path)

	async def write(self, model_name: str, content: str) -> str:
		path = self.path_for(model_name)
		await asyncio.to_thread(save_output_md, path, content)
		logger.debug("wrote %d chars for %s to %s", len(content), model_name,
		             path)
		return str(path)


__all__ = ["FileResultWriter", "save_output_md"]
