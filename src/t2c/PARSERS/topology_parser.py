# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Parsers for topology files exported by the diagram editor (JSON or YAML).
"""
import json
from typing import Any, Dict
import yaml
from pydantic import ValidationError
from ..MODELS.topology import Topology


class TopologyParseError(Exception):
    """
    Raised when topology input cannot be turned into a Topology.
    """


class TopologyParser:
    """
    Parser for topology documents with top-level `nodes` and `edges` lists.
    """
    def parse(self, topology_path: str) -> Topology:
        """
        Parses a topology file from a path.

        :param topology_path: Path to a .json, .yml or .yaml file.
        :return: Parsed topology.
        """
        with open(topology_path, 'r') as f:
            content = f.read()
        return self.parse_from_string(content, is_json=topology_path.endswith('.json'))

    def parse_from_string(self, content: str, is_json: bool = False) -> Topology:
        """
        Parses a topology from a string.

        :param content: JSON or YAML content.
        :param is_json: Parse strictly as JSON.
        :return: Parsed topology.
        :raises TopologyParseError: If the content is malformed.
        """
        try:
            data = json.loads(content) if is_json else yaml.safe_load(content)
        except (ValueError, yaml.YAMLError) as e:
            raise TopologyParseError(f"Malformed topology document: {e}") from e
        return self.parse_from_dict(data)

    def parse_from_dict(self, data: Any) -> Topology:
        """
        Builds a topology from already decoded data.

        :param data: A mapping with `nodes` and `edges`, or None for an empty topology.
        :return: Parsed topology.
        :raises TopologyParseError: If the data does not describe a topology.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TopologyParseError(f"Topology must be a mapping, got {type(data).__name__}")
        try:
            return Topology.model_validate(self._drop_nulls(data))
        except ValidationError as e:
            raise TopologyParseError(f"Invalid topology: {e}") from e

    @staticmethod
    def _drop_nulls(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Treats `nodes: null` or `edges: null` (an empty YAML key) as empty lists.
        """
        return {k: ([] if v is None and k in ('nodes', 'edges') else v) for k, v in data.items()}
