"""Local ONNX embedding model driven by a HuggingFace tokenizer.

Building an OnnxEmbedder loads the model graph and tokenizer from disk, which
is the expensive step; the instance is then reused for many calls. A single
instance must not be used from two threads at once; the worker pool gives
each thread its own.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort
from tokenizers import Tokenizer

from bookvec.errors import OracleUnavailable

_PAD_ID = 0


def prepare_tokenized_inputs(
    tokenizer: Tokenizer, texts: Sequence[str]
) -> tuple[np.ndarray, np.ndarray]:
    """Encode *texts* and pad ids and attention masks to the longest sequence.

    Returns:
        ``(input_ids, attention_mask)``, both int64 arrays of shape
        ``(len(texts), max_length)``. Padding uses 0 in both arrays.
    """
    encodings = tokenizer.encode_batch(list(texts), add_special_tokens=True)
    max_length = max((len(enc.ids) for enc in encodings), default=0)

    ids = np.full((len(encodings), max_length), _PAD_ID, dtype=np.int64)
    mask = np.zeros((len(encodings), max_length), dtype=np.int64)
    for row, enc in enumerate(encodings):
        n = len(enc.ids)
        ids[row, :n] = enc.ids
        mask[row, :n] = enc.attention_mask
    return ids, mask


def pool_embeddings(outputs: Sequence[np.ndarray], mask: np.ndarray) -> np.ndarray:
    """Pick the sentence-embedding output, or mean-pool a hidden state.

    Sentence-transformer exports emit a 2-D ``(batch, dim)`` output next to the
    3-D token states; that one is preferred. Otherwise the first 3-D output is
    averaged over unmasked tokens.
    """
    for out in outputs:
        if out.ndim == 2 and out.shape[0] == mask.shape[0]:
            return out.astype(np.float32)
    for out in outputs:
        if out.ndim == 3:
            weights = mask[:, :, None].astype(np.float32)
            summed = (out * weights).sum(axis=1)
            counts = np.clip(weights.sum(axis=1), 1.0, None)
            return (summed / counts).astype(np.float32)
    raise ValueError("Model produced no 2-D or 3-D output to build embeddings from")


class OnnxEmbedder:
    """Text → vector using an ONNX model and its tokenizer.

    Args:
        model_path: Path to the ``model.onnx`` file.
        tokenizer_path: Path to the ``tokenizer.json`` file.
        intra_threads: ONNX Runtime intra-op threads for this session.
        max_length: Truncate token sequences to this length (None = no limit).

    Raises:
        OracleUnavailable: If either artifact is missing or cannot be loaded.
    """

    def __init__(
        self,
        model_path: Path | str,
        tokenizer_path: Path | str,
        *,
        intra_threads: int = 1,
        max_length: int | None = None,
    ) -> None:
        self.model_path = Path(model_path)
        self.tokenizer_path = Path(tokenizer_path)
        for label, path in (("model", self.model_path), ("tokenizer", self.tokenizer_path)):
            if not path.is_file():
                raise OracleUnavailable(f"Embedding {label} file not found: '{path}'")

        try:
            self.tokenizer = Tokenizer.from_file(str(self.tokenizer_path))
            if max_length:
                self.tokenizer.enable_truncation(max_length)

            options = ort.SessionOptions()
            options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
            options.intra_op_num_threads = intra_threads
            self.session = ort.InferenceSession(
                str(self.model_path),
                sess_options=options,
                providers=["CPUExecutionProvider"],
            )
        except Exception as exc:  # tokenizers and onnxruntime raise their own types
            raise OracleUnavailable(f"Cannot load embedding model: {exc}") from exc

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, in input order."""
        if not texts:
            return []
        ids, mask = prepare_tokenized_inputs(self.tokenizer, texts)
        outputs = self.session.run(None, self._feed(ids, mask))
        return pool_embeddings(outputs, mask).tolist()

    def _feed(self, ids: np.ndarray, mask: np.ndarray) -> dict[str, np.ndarray]:
        """Map model inputs by name onto the tokenized arrays."""
        feed: dict[str, np.ndarray] = {}
        for inp in self.session.get_inputs():
            name = inp.name
            if "mask" in name:
                feed[name] = mask
            elif "token_type" in name:
                feed[name] = np.zeros_like(ids)
            elif "position" in name:
                feed[name] = np.broadcast_to(np.arange(ids.shape[1], dtype=np.int64), ids.shape).copy()
            else:
                feed[name] = ids
        return feed

    def describe(self) -> dict[str, Any]:
        """Return model metadata and input/output signatures."""
        meta = self.session.get_modelmeta()
        return {
            "name": meta.graph_name,
            "description": meta.description,
            "producer": meta.producer_name,
            "inputs": [(i.name, i.type, i.shape) for i in self.session.get_inputs()],
            "outputs": [(o.name, o.type, o.shape) for o in self.session.get_outputs()],
        }
