from pathlib import Path

from storyreel.concat import export_audio
from storyreel.config import AppConfig
from storyreel.diagnostics import print_env_diagnostics
from storyreel.pipeline import render
from storyreel.stats import Timer
from storyreel.types import RenderJob, Scene

IMAGE_EXTS = (".png", ".jpg", ".jpeg", ".webp")


def load_scenes(cfg: AppConfig) -> list:
    """Scenes from NN.<image>, NN.pcm and an optional NN.txt script in the scenes dir."""
    root = Path(cfg.paths.scenes_dir)
    scenes = []
    for pcm_path in sorted(root.glob("*.pcm")):
        stem = pcm_path.stem
        image_path = next((root / f"{stem}{ext}" for ext in IMAGE_EXTS if (root / f"{stem}{ext}").exists()), None)
        if image_path is None:
            raise FileNotFoundError(f"no image for scene {stem} in {root}")
        txt_path = root / f"{stem}.txt"
        script = txt_path.read_text(encoding="utf-8").strip() if txt_path.exists() else ""
        scenes.append(Scene.from_pcm(
            id=stem,
            image=image_path,
            script=script,
            pcm=pcm_path.read_bytes(),
            sample_rate=cfg.audio.sample_rate,
            channels=cfg.audio.channels,
            decode=False,
        ))
    return scenes


def main():
    cfg = AppConfig.default()
    cfg.validate()

    print_env_diagnostics(cfg)

    scenes = load_scenes(cfg)
    print(f"📚 {len(scenes)} scenes from {cfg.paths.scenes_dir}")

    with Timer("audio export"):
        export_audio(scenes, cfg).save(cfg.paths.out_audio)

    job = RenderJob(scenes=scenes, video=cfg.video, on_progress=lambda msg: print(f"\n▶️ {msg}"))
    with Timer("video render"):
        artifact = render(job, cfg)
    artifact.save(cfg.paths.out_video)

    print(f"✅ FINAL OK → {cfg.paths.out_video} | {cfg.paths.out_audio}")


if __name__ == "__main__":
    main()
