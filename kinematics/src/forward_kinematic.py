#!/usr/bin/env python3
"""
Forward Kinematics Module for Serial Robot Chains

This module implements forward kinematics using the Product of Exponentials (PoE)
formulation with screw theory. The screw axes and home configurations are
extracted from a URDF description for the chain between the root link and a
named end link.

Key Features:
- URDF chain extraction (revolute, continuous, prismatic and fixed joints)
- Product of Exponentials (PoE) formulation
- Matrix exponential computation
- Per-link frames for drawing and collision checking

Author: Robot Control Team
"""

import os
import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple

import numpy as np
from numpy.linalg import norm
from scipy.spatial.transform import Rotation as R

from reach.errors import ModelLoadError

logger = logging.getLogger(__name__)

ACTIVE_JOINT_TYPES = ('revolute', 'continuous', 'prismatic')


def parse_origin(origin_elem: Optional[ET.Element]) -> np.ndarray:
    """4x4 transform from a URDF <origin xyz=... rpy=...> element."""
    T = np.eye(4)
    if origin_elem is None:
        return T
    xyz = [float(v) for v in origin_elem.get('xyz', '0 0 0').split()]
    rpy = [float(v) for v in origin_elem.get('rpy', '0 0 0').split()]
    T[:3, :3] = R.from_euler('xyz', rpy).as_matrix()
    T[:3, 3] = xyz
    return T


def parse_urdf(urdf_path: str) -> Tuple[ET.Element, List[str], Dict[str, dict]]:
    """
    Read links and joints of a URDF file.

    Returns:
        root element, link names in file order, joint dicts keyed by name

    Raises:
        ModelLoadError: if the file is missing or not valid URDF
    """
    if not os.path.exists(urdf_path):
        raise ModelLoadError(f"Robot description not found: {urdf_path}")
    try:
        root = ET.parse(urdf_path).getroot()
    except ET.ParseError as e:
        raise ModelLoadError(f"Invalid robot description {urdf_path}: {e}") from e
    if root.tag != 'robot':
        raise ModelLoadError(f"Invalid robot description {urdf_path}: root element is <{root.tag}>")

    links = [link.attrib['name'] for link in root.findall('link')]
    joints: Dict[str, dict] = {}
    for j in root.findall('joint'):
        name = j.attrib['name']
        parent, child = j.find('parent'), j.find('child')
        if parent is None or child is None:
            raise ModelLoadError(f"Joint '{name}' is missing its parent or child link")

        axis = np.array([1.0, 0.0, 0.0])
        axis_elem = j.find('axis')
        if axis_elem is not None and 'xyz' in axis_elem.attrib:
            axis = np.array([float(v) for v in axis_elem.attrib['xyz'].split()])
        if norm(axis) > 0:
            axis = axis / norm(axis)

        joint_type = j.attrib.get('type', 'fixed')
        lower, upper = -np.pi, np.pi
        limit_elem = j.find('limit')
        if joint_type != 'continuous' and limit_elem is not None:
            lower = float(limit_elem.get('lower', lower))
            upper = float(limit_elem.get('upper', upper))

        joints[name] = {
            'name': name,
            'type': joint_type,
            'parent': parent.attrib['link'],
            'child': child.attrib['link'],
            'origin': parse_origin(j.find('origin')),
            'axis': axis,
            'limits': (lower, upper),
        }
    return root, links, joints


def find_root_link(links: List[str], joints: Dict[str, dict]) -> str:
    children = {j['child'] for j in joints.values()}
    roots = [link for link in links if link not in children]
    if not roots:
        raise ModelLoadError("Could not determine the root link of the robot description")
    return roots[0]


def build_chain(joints: Dict[str, dict], root_link: str, end_link: str) -> List[dict]:
    """Joints from ``root_link`` to ``end_link``, root first."""
    child_to_joint = {j['child']: j for j in joints.values()}
    chain = []
    link = end_link
    while link != root_link:
        if link not in child_to_joint:
            raise ModelLoadError(f"No joint path from link '{link}' to root '{root_link}'")
        joint = child_to_joint[link]
        if joint in chain:
            raise ModelLoadError("Cycle detected in kinematic chain")
        chain.append(joint)
        link = joint['parent']
    chain.reverse()
    return chain


class ForwardKinematics:
    """Forward kinematics implementation using Product of Exponentials."""

    def __init__(self, S: np.ndarray, M: np.ndarray, joint_limits: np.ndarray,
                 link_names: List[str], link_home: List[np.ndarray],
                 link_active_count: List[int], joint_names: Optional[List[str]] = None):
        """
        Args:
            S: screw axes in the base frame (6 x n_joints), columns [w; v]
            M: home pose of the end link (4 x 4)
            joint_limits: (2 x n_joints) lower/upper limits
            link_names: chain links, root first
            link_home: home pose of every link
            link_active_count: number of active joints preceding every link
            joint_names: active joint names
        """
        self.S = np.asarray(S, dtype=float)
        self.M = np.asarray(M, dtype=float)
        self.joint_limits = np.asarray(joint_limits, dtype=float)
        self.link_names = list(link_names)
        self.link_home = [np.asarray(T, dtype=float) for T in link_home]
        self.link_active_count = list(link_active_count)
        self.joint_names = list(joint_names or [f"j{i + 1}" for i in range(self.S.shape[1])])
        self.n_joints = self.S.shape[1]

        if self.n_joints == 0:
            raise ModelLoadError("No active joints found in the kinematic chain.")

        logger.info(f"Forward kinematics initialized with {self.n_joints} joints, "
                    f"{len(self.link_names)} links")

    @classmethod
    def from_urdf(cls, urdf_path: str, end_link: str,
                  root_link: Optional[str] = None) -> 'ForwardKinematics':
        """
        Extract the serial chain ending at ``end_link`` from a URDF file.

        Raises:
            ModelLoadError: missing file, unknown end link or no active joints
        """
        _, links, joints = parse_urdf(urdf_path)
        if end_link not in links:
            raise ModelLoadError(f"End link '{end_link}' not found in {urdf_path}")
        root_link = root_link or find_root_link(links, joints)
        chain = build_chain(joints, root_link, end_link)

        T = np.eye(4)
        S_list, limits, joint_names = [], [], []
        link_names, link_home, link_active_count = [root_link], [T.copy()], [0]

        for joint in chain:
            T = T @ joint['origin']
            axis = T[:3, :3] @ joint['axis']
            if joint['type'] in ('revolute', 'continuous'):
                S_list.append(np.hstack((axis, -np.cross(axis, T[:3, 3]))))
            elif joint['type'] == 'prismatic':
                S_list.append(np.hstack((np.zeros(3), axis)))
            if joint['type'] in ACTIVE_JOINT_TYPES:
                limits.append(joint['limits'])
                joint_names.append(joint['name'])
            link_names.append(joint['child'])
            link_home.append(T.copy())
            link_active_count.append(len(S_list))

        if not S_list:
            raise ModelLoadError(f"No active joints between '{root_link}' and '{end_link}'")

        logger.info(f"Loaded chain {root_link} -> {end_link} from {urdf_path}")
        return cls(S=np.array(S_list).T, M=T, joint_limits=np.array(limits).T,
                   link_names=link_names, link_home=link_home,
                   link_active_count=link_active_count, joint_names=joint_names)

    @staticmethod
    def skew_symmetric(w: np.ndarray) -> np.ndarray:
        """
        Compute skew-symmetric matrix from 3D vector.

        Args:
            w: 3D vector

        Returns:
            3x3 skew-symmetric matrix
        """
        return np.array([
            [0, -w[2], w[1]],
            [w[2], 0, -w[0]],
            [-w[1], w[0], 0]
        ])

    @staticmethod
    def matrix_exp6(xi_theta: np.ndarray) -> np.ndarray:
        """
        Compute matrix exponential of a 6D screw vector.

        Uses the closed-form solution for SE(3) matrix exponential:
        exp([ξ]θ) = [exp([ω]θ)  G·v·θ]
                    [0         1     ]

        Args:
            xi_theta: 6D screw vector [ω·θ, v·θ]

        Returns:
            4x4 homogeneous transformation matrix
        """
        w_theta, v_theta = xi_theta[:3], xi_theta[3:]
        theta = norm(w_theta)

        T = np.eye(4)

        if theta < 1e-12:
            # Pure translation
            T[:3, 3] = v_theta
            return T

        w = w_theta / theta
        v = v_theta / theta
        w_hat = ForwardKinematics.skew_symmetric(w)
        w_hat2 = w_hat @ w_hat

        # Rodrigues' formula
        T[:3, :3] = np.eye(3) + np.sin(theta) * w_hat + (1 - np.cos(theta)) * w_hat2
        G = (np.eye(3) * theta +
             (1 - np.cos(theta)) * w_hat +
             (theta - np.sin(theta)) * w_hat2)
        T[:3, 3] = G @ v
        return T

    @staticmethod
    def adjoint(T: np.ndarray) -> np.ndarray:
        """6x6 adjoint of a transform, acting on [w; v] twists."""
        Rm, p = T[:3, :3], T[:3, 3]
        Ad = np.zeros((6, 6))
        Ad[:3, :3] = Rm
        Ad[3:, 3:] = Rm
        Ad[3:, :3] = ForwardKinematics.skew_symmetric(p) @ Rm
        return Ad

    def _check_input(self, q: np.ndarray) -> np.ndarray:
        q = np.asarray(q, dtype=float)
        if q.ndim != 1 or q.shape[0] != self.n_joints:
            raise ValueError(f"Input q must have shape ({self.n_joints},), got {q.shape}")
        return q

    def _exp_products(self, q: np.ndarray) -> List[np.ndarray]:
        """Cumulative products exp([S1]q1)...exp([Si]qi), i = 0..n."""
        products = [np.eye(4)]
        for i in range(self.n_joints):
            products.append(products[-1] @ self.matrix_exp6(self.S[:, i] * q[i]))
        return products

    def compute_forward_kinematics(self, q: np.ndarray) -> np.ndarray:
        """
        End link pose T(q) = exp([S₁]q₁) · ... · exp([Sₙ]qₙ) · M

        Args:
            q: Joint positions (n_joints,)

        Returns:
            4x4 homogeneous transformation matrix
        """
        q = self._check_input(q)
        return self._exp_products(q)[-1] @ self.M

    def compute_link_frames(self, q: np.ndarray) -> List[np.ndarray]:
        """Pose of every chain link at ``q``, root first."""
        q = self._check_input(q)
        products = self._exp_products(q)
        return [products[k] @ T_home
                for k, T_home in zip(self.link_active_count, self.link_home)]

    def compute_space_jacobian(self, q: np.ndarray) -> np.ndarray:
        """Space Jacobian (6 x n_joints), rows [w; v]."""
        q = self._check_input(q)
        products = self._exp_products(q)
        J = np.zeros((6, self.n_joints))
        for i in range(self.n_joints):
            J[:, i] = self.adjoint(products[i]) @ self.S[:, i]
        return J

    def get_joint_limits(self) -> np.ndarray:
        """Get joint limits."""
        return self.joint_limits.copy()
