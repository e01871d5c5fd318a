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
Converters for generating nginx reverse-proxy configurations for the load
balancers of a deployment descriptor.
"""
import os
from typing import Dict, List
from jinja2 import Template
from ..MODELS.deployment_descriptor import DeploymentDescriptor
from ..MODELS.topology import NodeType
from ..RULES.rule_tables import DEFAULT_CONFIGS, NGINX_CONFIG_FILENAME, safe_id

NGINX_TEMPLATE = """
events {}

http {
{% if upstreams %}
    upstream {{ name }} {
{% for server in upstreams %}
        server {{ server.host }}:{{ server.port }};
{% endfor %}
    }
{% endif %}

    server {
        listen 80;

        location / {
{% if upstreams %}
            proxy_pass http://{{ name }};
            proxy_set_header Host $host;
            proxy_set_header X-Real-IP $remote_addr;
            proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
{% else %}
            return 502;
{% endif %}
        }
    }
}
"""


class NginxConfigConverter:
    """
    Renders one nginx configuration per load-balancer service, proxying to
    the app servers the load balancer depends on.
    """

    def __init__(self, descriptor: DeploymentDescriptor):
        """
        Initializes the nginx converter.

        :param descriptor: The compiled deployment descriptor.
        """
        self.descriptor = descriptor
        self.template = Template(NGINX_TEMPLATE, trim_blocks=True, lstrip_blocks=True)

    def upstreams(self, service: str) -> List[Dict[str, str]]:
        """
        Lists the app servers behind a load balancer.

        :param service: The load-balancer service name.
        :return: One {'host', 'port'} entry per app server, in dependency order.
        """
        default_port = str(DEFAULT_CONFIGS[NodeType.APP_SERVER].port)
        servers = []
        for dep in self.descriptor.services[service].depends_on:
            target = self.descriptor.services.get(dep)
            if target is None or target.node_type != NodeType.APP_SERVER.value:
                continue
            servers.append({"host": dep, "port": target.expose[0] if target.expose else default_port})
        return servers

    def render(self, service: str) -> str:
        """
        Renders the configuration of one load balancer.

        :param service: The load-balancer service name.
        :return: The nginx configuration text.
        """
        return self.template.render(name=service, upstreams=self.upstreams(service)).lstrip()

    def render_all(self) -> Dict[str, str]:
        """
        Renders every load balancer's configuration.

        :return: File contents keyed by the file name the service mounts.
        """
        configs = {}
        for name, svc in self.descriptor.services_of_type(NodeType.LOAD_BALANCER.value).items():
            configs[NGINX_CONFIG_FILENAME.format(node_id=safe_id(svc.node_id or name))] = self.render(name)
        return configs

    def convert(self, output_dir: str) -> List[str]:
        """
        Writes every load balancer's configuration.

        :param output_dir: The directory the compose file lives in.
        :return: Paths of the written files.
        """
        os.makedirs(output_dir, exist_ok=True)
        paths = []
        for filename, content in self.render_all().items():
            path = os.path.join(output_dir, filename)
            with open(path, "w") as f:
                f.write(content)
            paths.append(path)
        return paths
