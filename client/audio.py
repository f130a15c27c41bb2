# client/audio.py
import numpy as np

TARGET_RATE = 16000


def to_mono(samples: np.ndarray) -> np.ndarray:
    """(n,) or (n, channels) float samples -> (n,) by averaging channels."""
    samples = np.asarray(samples, dtype=np.float32)
    if samples.ndim == 2:
        return samples.mean(axis=1)
    return samples


def downsample(samples: np.ndarray, rate: int, target_rate: int = TARGET_RATE) -> np.ndarray:
    """Resample mono or multichannel float audio to ``target_rate`` mono by linear interpolation."""
    mono = to_mono(samples)
    if rate == target_rate or mono.size == 0:
        return mono
    if rate <= 0:
        raise ValueError(f"invalid sample rate: {rate}")
    n_out = int(round(mono.size * target_rate / rate))
    if n_out == 0:
        return np.zeros(0, dtype=np.float32)
    positions = np.arange(n_out, dtype=np.float64) * (rate / target_rate)
    return np.interp(positions, np.arange(mono.size), mono).astype(np.float32)


def float32_to_pcm16(samples: np.ndarray) -> bytes:
    """Little-endian 16-bit PCM from float samples in [-1, 1]; values outside are clipped."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


def frame_to_pcm(samples: np.ndarray, rate: int) -> bytes:
    return float32_to_pcm16(downsample(samples, rate))
