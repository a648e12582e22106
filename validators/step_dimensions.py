from stair_model import Slab, Staircase


class StepDimensionValidator:
    """Advisory checks of detected steps against the configured step limits.

    Dimensions are read in sensor convention: width along x, height along y.
    Nothing is filtered; callers decide what to do with the issues.
    """

    @staticmethod
    def check_slab(slab: Slab, max_step_width: float) -> list[str]:
        """
        Validate a single tread.

        Args:
            slab: Detected tread (metres)
            max_step_width: Widest tread expected
        """
        issues = []
        width = slab.size[0]
        if width > max_step_width:
            issues.append(f"Step width {width:.3f}m exceeds maximum {max_step_width:.3f}m")
        return issues

    @staticmethod
    def check_staircase(staircase: Staircase, min_step_height: float,
                        max_step_height: float) -> list[str]:
        """
        Validate the rise between each pair of adjacent treads.

        Args:
            staircase: Treads ordered bottom to top
            min_step_height: Lowest acceptable rise (metres)
            max_step_height: Highest acceptable rise (metres)
        """
        issues = []
        steps = staircase.steps
        for i in range(1, len(steps)):
            rise = abs(steps[i].center[1] - steps[i - 1].center[1])
            if not (min_step_height <= rise <= max_step_height):
                issues.append(
                    f"Rise {rise:.3f}m between steps {i} and {i + 1} is outside "
                    f"[{min_step_height:.3f}, {max_step_height:.3f}]"
                )
        return issues
