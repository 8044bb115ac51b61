"""Generates Kubernetes manifests for a chain of relay servers."""

from __future__ import annotations

import argparse
import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, TextIO

PORT = 8080


@dataclass
class KubernetesService:
    """Values substituted into the per-node manifest template."""

    service_name: str
    service_app: str
    replicas: int
    optional_node_port: str
    output_port: str
    deployment_name: str
    container_name: str
    image_name: str
    next_service: str
    number_in_chain: int
    port: int


class Topology(list):
    """An ordered chain of services."""

    def delete_command(self, use_fish: bool) -> str:
        """Return a shell command that deletes every deployment and service."""
        parts = []
        for node in self:
            if use_fish:
                parts.append(
                    f"kubectl delete deployment {node.deployment_name}; "
                    f"and kubectl delete service {node.service_name}; and "
                )
            else:
                parts.append(
                    f"kubectl delete deployment {node.deployment_name}; "
                    f"kubectl delete service {node.service_name};"
                )
        if use_fish:
            parts.append("kubectl delete deployment postgresql-deployment; and kubectl delete service postgresql-service")
        else:
            parts.append("kubectl delete deployment postgresql-deployment; kubectl delete service postgresql-service")
        return "".join(parts)


def generate_service(current_number: int, next_number: int, registry: str, replicas: int) -> KubernetesService:
    """Describe node ``current_number``, which forwards to ``next_number``."""
    if current_number == 0:
        optional_node_port = "type: NodePort"
        output_port = "nodePort: 31432"
    else:
        optional_node_port = ""
        output_port = f"targetPort: {PORT}"
    return KubernetesService(
        service_name=f"restrelay-bench-{current_number}",
        service_app=f"restrelay-bench-{current_number}-app",
        replicas=replicas,
        optional_node_port=optional_node_port,
        output_port=output_port,
        deployment_name=f"restrelay-bench-{current_number}-deployment",
        container_name=f"restrelay-bench-{current_number}",
        image_name=f"{registry}/restrelay-bench:1.0",
        next_service=f"http://restrelay-bench-{next_number}:{PORT}/",
        number_in_chain=current_number,
        port=PORT,
    )


def generate(number: int, registry: str, replicas: int) -> Topology:
    """Build a chain of ``number`` services; the last one points to node -1."""
    if number < 1:
        raise ValueError("number of nodes should be greater than 0")
    topology = Topology(generate_service(i, i + 1, registry, replicas) for i in range(number - 1))
    topology.append(generate_service(number - 1, -1, registry, replicas))
    return topology


_ACTION_RE = re.compile(r"(\s*)\{\{(-?)\s*\.(\w+)\s*(-?)\}\}(\s*)")


def _lookup(data: Any, name: str) -> Any:
    if isinstance(data, Mapping):
        if name in data:
            return data[name]
        raise KeyError(f"template: no entry for key {name!r}")
    if hasattr(data, name):
        return getattr(data, name)
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
    if dataclasses.is_dataclass(data) and hasattr(data, snake):
        return getattr(data, snake)
    raise KeyError(f"template: can't evaluate field {name}")


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_template(template: str, data: Any) -> str:
    """Substitute ``{{.Field}}`` actions (with optional ``-`` trim markers)."""
    out = []
    pos = 0
    for match in _ACTION_RE.finditer(template):
        gap = template[pos:match.start()]
        if "{{" in gap:
            raise ValueError("template: unsupported action")
        lead, left_trim, name, right_trim, trail = match.groups()
        out.append(gap)
        if not left_trim:
            out.append(lead)
        out.append(_format(_lookup(data, name)))
        if not right_trim:
            out.append(trail)
        pos = match.end()
    rest = template[pos:]
    if "{{" in rest:
        raise ValueError("template: unsupported action")
    out.append(rest)
    return "".join(out)


def write_topology(stream: TextIO, template: str, topology: Sequence[KubernetesService], db_config_path: str) -> None:
    """Write every node's manifest separated by ``---``, then the database manifest."""
    if not topology:
        raise ValueError("topology is empty")
    stream.write("\n---\n".join(render_template(template, node) for node in topology))
    with open(db_config_path, encoding="utf-8") as db_file:
        db_config = db_file.read()
    stream.write("\n---\n")
    stream.write(db_config)


def _write_delete_command(filename: str, command: str) -> None:
    if not filename:
        print(command)
        return
    with open(filename, "w", encoding="utf-8") as out:
        out.write(command)


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate Kubernetes manifests for a relay chain.")
    parser.add_argument("-r", "--registry", default="localhost:5000", help="sets docker registry url")
    parser.add_argument("-n", "--nodes", type=int, default=3, help="sets number of nodes in topology")
    parser.add_argument("-o", "--output", default="result", help="sets configuration output file in yml format")
    parser.add_argument(
        "-d",
        "--delete-output",
        default="",
        help="sets output for deleting topology in bash (or fish). Writes to stdout if empty",
    )
    parser.add_argument("--db-config", default="db.yml", help="sets path to k8s config for database")
    parser.add_argument("--node-config", default="node.yml", help="sets path to k8s config for each node")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Write ``<output>.yml`` and the delete command; return the exit status."""
    args = _parse_args(argv)
    try:
        with open(args.node_config, encoding="utf-8") as template_file:
            template = template_file.read()
        if not args.output:
            raise ValueError("Wrong filename")
        topology = generate(args.nodes, args.registry, 2)
        with open(args.output + ".yml", "w", encoding="utf-8") as result:
            _write_delete_command(args.delete_output, topology.delete_command(False))
            write_topology(result, template, topology, args.db_config)
    except (OSError, ValueError, KeyError) as exc:
        print(exc)
        return 255
    return 0