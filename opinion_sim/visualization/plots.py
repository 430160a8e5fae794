"""
Plotting utilities for opinion trajectories.

Generates visualizations for:
- First and last opinion snapshots per agent
- Every agent's opinion over time
- The stationary-step counter
"""

from typing import List, Dict, Optional, Any
import os

from ..simulation.trajectory import Trajectory


class TrajectoryPlotter:
    """
    Creates visualizations for simulation results with matplotlib.

    Every plot method returns the matplotlib figure and saves it when
    given a file name. Relative file names are resolved against
    `output_dir`.
    """

    def __init__(self, output_dir: Optional[str] = None):
        """Initialize the trajectory plotter.

        Args:
            output_dir: Directory for saved figures and reports. Defaults to
                the current directory.
        """
        self.output_dir = output_dir or "."

    def _resolve(self, save_path: Optional[str]) -> Optional[str]:
        if save_path is None:
            return None
        if os.path.isabs(save_path):
            return save_path
        os.makedirs(self.output_dir, exist_ok=True)
        return os.path.join(self.output_dir, save_path)

    def _save(self, fig: Any, save_path: Optional[str]) -> None:
        path = self._resolve(save_path)
        if path:
            fig.savefig(path, dpi=150, bbox_inches='tight')

    def plot_snapshots(
        self,
        trajectory: Trajectory,
        save_path: Optional[str] = None,
    ) -> Any:
        """Plot the first and last snapshots, opinion against agent id.

        Args:
            trajectory: A trajectory with at least one snapshot.
            save_path: Optional file name for the image.

        Returns:
            The matplotlib figure.
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(10, 6))

        first = trajectory.first
        last = trajectory.last
        if first is not None:
            ax.plot(range(len(first)), first.values(), 'b-', linewidth=1,
                    label=f'Step {first.step}')
            ax.plot(range(len(last)), last.values(), 'r-', linewidth=1,
                    label=f'Step {last.step}')

        ax.set_xlabel('Agent')
        ax.set_ylabel('Opinion')
        ax.set_title('Agent Opinions')
        ax.legend()
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def plot_trajectory(
        self,
        trajectory: Trajectory,
        save_path: Optional[str] = None,
        max_agents: Optional[int] = None,
    ) -> Any:
        """Plot every agent's opinion across all steps.

        Args:
            trajectory: The trajectory to draw.
            save_path: Optional file name for the image.
            max_agents: Draw only the lowest ids up to this many agents.

        Returns:
            The matplotlib figure.
        """
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(12, 6))

        steps = [snapshot.step for snapshot in trajectory]
        agent_ids = sorted(trajectory.first.opinions) if len(trajectory) else []
        if max_agents is not None:
            agent_ids = agent_ids[:max_agents]

        for agent_id in agent_ids:
            ax.plot(steps, trajectory.agent_series(agent_id), linewidth=0.6, alpha=0.6)

        reason = trajectory.stop_reason.value if trajectory.stop_reason else "running"
        ax.set_xlabel('Simulation Step')
        ax.set_ylabel('Opinion')
        ax.set_title(f'Opinion Trajectories ({reason})')
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def plot_stationary(
        self,
        timeline: List[Dict[str, Any]],
        min_stationary: Optional[int] = None,
        save_path: Optional[str] = None,
    ) -> Any:
        """Plot the stationary-step counter over time.

        Args:
            timeline: Step metrics dicts with 'step' and 'stationary' keys,
                as produced by MetricsCollector.get_timeline().
            min_stationary: Optional convergence threshold to mark.
            save_path: Optional file name for the image.

        Returns:
            The matplotlib figure.
        """
        import matplotlib.pyplot as plt

        steps = [t["step"] for t in timeline]
        stationary = [t.get("stationary", 0) for t in timeline]

        fig, ax = plt.subplots(figsize=(12, 5))
        ax.plot(steps, stationary, 'g-', linewidth=2, label='Stationary steps')

        if min_stationary is not None:
            ax.axhline(y=min_stationary, color='r', linestyle='--',
                       label='Convergence threshold')

        ax.set_xlabel('Simulation Step')
        ax.set_ylabel('Consecutive unchanged steps')
        ax.set_title('Stationary Counter')
        ax.legend()
        ax.grid(True, alpha=0.3)

        plt.tight_layout()
        self._save(fig, save_path)
        return fig

    def create_summary_report(
        self,
        config: Dict[str, Any],
        metrics: Dict[str, Any],
        convergence: Dict[str, Any],
        save_path: Optional[str] = None,
    ) -> str:
        """Create a text summary report of simulation results.

        Args:
            config: SimulationConfig.to_dict() output.
            metrics: SimulationMetrics.to_dict() output.
            convergence: ConvergenceMetrics.to_dict() output.
            save_path: Optional file name for the text report.

        Returns:
            The formatted report as a string.
        """
        lines = [
            "=" * 60,
            "OPINION DYNAMICS SIMULATION REPORT",
            "=" * 60,
            "",
            "PARAMETERS",
            "-" * 40,
            f"Agents: {config.get('num_agents')}",
            f"Edge Probability: {config.get('edge_probability')}",
            f"Confidence Threshold: {config.get('confidence_threshold')}",
            f"Adaptation Rate: {config.get('adaptation_rate')}",
            f"Update Nodes per Step: {config.get('num_update_nodes')}",
            f"Max Steps: {config.get('max_steps')}",
            f"Min Stationary: {config.get('min_stationary')}",
            f"Seed: {metrics.get('seed', config.get('seed'))}",
            "",
            "NETWORK STATISTICS",
            "-" * 40,
            f"Edges: {metrics.get('edge_count', 0)}",
            f"Density: {metrics.get('graph_density', 0):.4f}",
            f"Average Degree: {metrics.get('average_degree', 0):.2f}",
            f"Isolated Agents: {metrics.get('isolated_count', 0)}",
            f"Components: {metrics.get('component_count', 0)}",
            "",
            "RUN",
            "-" * 40,
            f"Simulation ID: {metrics.get('simulation_id', 'N/A')}",
            f"Steps: {metrics.get('total_steps', 0)}",
            f"Stop Reason: {metrics.get('stop_reason')}",
            f"Interactions: {metrics.get('total_interactions', 0)} "
            f"(applied {metrics.get('applied_interactions', 0)})",
            f"Steps With Change: {metrics.get('changed_steps', 0)}",
            "",
            "CONVERGENCE",
            "-" * 40,
            f"Initial Variance: {convergence.get('initial_variance', 0):.6f}",
            f"Final Variance: {convergence.get('final_variance', 0):.6f}",
            f"Variance Reduction: {convergence.get('variance_reduction', 0):.2%}",
            f"Opinion Clusters: {convergence.get('cluster_count', 0)}",
            f"Consensus Reached: {convergence.get('consensus_reached', False)}",
        ]

        centers = convergence.get('cluster_centers', [])
        sizes = convergence.get('cluster_sizes', [])
        if centers:
            lines.append("")
            lines.append("Clusters:")
            for center, size in list(zip(centers, sizes))[:10]:
                lines.append(f"  - {center:.4f}: {size} agents")

        lines.extend([
            "",
            "=" * 60,
            "END OF REPORT",
            "=" * 60,
        ])

        report = "\n".join(lines)

        path = self._resolve(save_path)
        if path:
            with open(path, 'w') as f:
                f.write(report)

        return report

    def __repr__(self) -> str:
        return f"TrajectoryPlotter(output_dir={self.output_dir!r})"
