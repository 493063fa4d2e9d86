import torch
import matplotlib.pyplot as plt

from retinoforge import BarStimulusPipeline, save_stimulus


def main():
    # Load the scanner setup shared with the CLI
    pipeline = BarStimulusPipeline.from_yaml("examples/configs/prisma_3t.yml")
    stimulus = pipeline.run(verbose=True)
    save_stimulus(stimulus, "prisma_bars.pt")

    seq = stimulus.sequence
    timing = stimulus.timing

    fig, axes = plt.subplots(2, 1, figsize=(10, 8))

    # First frame of each orientation block
    sweep_length = stimulus.resolved.sweep_length
    montage = [stimulus.images[block * sweep_length] for block in range(4)]
    axes[0].imshow(
        torch.cat(montage, dim=1).cpu().numpy(), cmap="gray", vmin=0, vmax=255
    )
    axes[0].set_title("Orientation blocks")

    # Presentation order over the scan
    axes[1].plot(timing.numpy(), seq.numpy(), lw=0.5)
    axes[1].set_xlabel("Time (s)")
    axes[1].set_ylabel("Image index")
    axes[1].set_title("Sequence")

    plt.tight_layout()
    plt.show()


if __name__ == "__main__":
    main()
