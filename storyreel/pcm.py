"""Raw 16-bit PCM decoding and canonical WAV encoding.

The WAV layout is a wire format: a 44-byte RIFF header with a ``fmt `` and a
``data`` sub-chunk, little-endian integers, payload immediately after.
"""

import struct

import numpy as np

from .errors import MalformedAudioError
from .types import AudioBuffer

WAV_HEADER_SIZE = 44
PCM_FORMAT_TAG = 1
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def pcm_duration(byte_length: int, sample_rate: int, channel_count: int) -> float:
    block_align = 2 * channel_count
    if byte_length % block_align != 0:
        raise MalformedAudioError(
            f"PCM length {byte_length} is not a multiple of {block_align} ({channel_count} ch, 16 bit)"
        )
    return (byte_length // block_align) / sample_rate


def decode_pcm(data: bytes, sample_rate: int = 24000, channel_count: int = 1) -> AudioBuffer:
    """Interleaved s16le bytes -> normalized float AudioBuffer."""
    if channel_count < 1:
        raise ValueError(f"channel_count must be >= 1, got {channel_count}")
    pcm_duration(len(data), sample_rate, channel_count)

    ints = np.frombuffer(data, dtype="<i2")
    frames = ints.reshape((-1, channel_count)).T
    samples = frames.astype(np.float32) / 32768.0
    return AudioBuffer(sample_rate=sample_rate, samples=samples)


def quantize(samples: np.ndarray) -> np.ndarray:
    """Float samples -> int16, scaling negatives by 32768 and the rest by 32767."""
    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return np.rint(scaled).astype(np.int16)


def to_pcm_bytes(buffer: AudioBuffer) -> bytes:
    # (channels, frames) -> interleaved frames
    interleaved = quantize(buffer.samples).T.reshape(-1)
    return interleaved.astype("<i2").tobytes()


def wav_header(data_size: int, sample_rate: int, channel_count: int, bits_per_sample: int = 16) -> bytes:
    block_align = channel_count * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_TAG,
        channel_count,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )


def encode_wav(
    source: AudioBuffer | bytes,
    sample_rate: int | None = None,
    channel_count: int | None = None,
    bits_per_sample: int = 16,
) -> bytes:
    """Wrap an AudioBuffer or raw PCM bytes in a canonical WAV container."""
    if isinstance(source, AudioBuffer):
        if bits_per_sample != 16:
            raise ValueError("float buffers are quantized to 16-bit PCM only")
        if sample_rate is not None and sample_rate != source.sample_rate:
            raise ValueError(f"sample_rate {sample_rate} != buffer rate {source.sample_rate}")
        if channel_count is not None and channel_count != source.channel_count:
            raise ValueError(f"channel_count {channel_count} != buffer channels {source.channel_count}")
        sample_rate = source.sample_rate
        channel_count = source.channel_count
        payload = to_pcm_bytes(source)
    else:
        if sample_rate is None or channel_count is None:
            raise ValueError("raw PCM needs an explicit sample_rate and channel_count")
        if bits_per_sample not in (8, 16, 24, 32):
            raise ValueError(f"unsupported bits_per_sample {bits_per_sample}")
        payload = bytes(source)
        block_align = channel_count * bits_per_sample // 8
        if len(payload) % block_align != 0:
            raise MalformedAudioError(
                f"PCM length {len(payload)} is not a multiple of block align {block_align}"
            )

    return wav_header(len(payload), sample_rate, channel_count, bits_per_sample) + payload


def decode_wav(data: bytes) -> AudioBuffer:
    """Parse a 16-bit PCM WAV container back into an AudioBuffer."""
    if len(data) < 12 or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise MalformedAudioError("not a RIFF/WAVE container")

    fmt = None
    payload = None
    pos = 12
    while pos + 8 <= len(data):
        tag, size = struct.unpack_from("<4sI", data, pos)
        body = data[pos + 8 : pos + 8 + size]
        if tag == b"fmt ":
            if size < 16:
                raise MalformedAudioError(f"fmt chunk too short ({size} bytes)")
            fmt = struct.unpack_from("<HHIIHH", body)
        elif tag == b"data":
            payload = body
            break
        # chunks are word aligned
        pos += 8 + size + (size & 1)

    if fmt is None or payload is None:
        raise MalformedAudioError("WAV container lacks a fmt or data chunk")

    format_tag, channels, sample_rate, _, _, bits = fmt
    if format_tag != PCM_FORMAT_TAG or bits != 16:
        raise MalformedAudioError(f"unsupported WAV encoding (format={format_tag}, bits={bits})")
    return decode_pcm(payload, sample_rate, channels)
